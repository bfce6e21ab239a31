"""
Entry point for running Agor as a module.

Usage:
    python -m agor [command] [options]
"""

from agor.cli import main

if __name__ == "__main__":
    main()
