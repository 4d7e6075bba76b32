"""
Main entry point for running snapvault as a module.

Usage:
    python -m snapvault <command> [options]
"""

from .cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())
