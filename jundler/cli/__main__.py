"""
Entry point for running the jundler CLI as a module.

Usage: python -m jundler.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
