"""
Entry point for running the jundler CLI as a module.

Usage: python -m jundler [command] [options]
"""

from jundler.cli.parser import main

if __name__ == "__main__":
    main()
