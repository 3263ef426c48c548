"""
Main entry point for running the package as a module.

Usage:
    python -m afterglow_publish preview ./workspace --show-files
    python -m afterglow_publish publish ./workspace
    python -m afterglow_publish thumbnails ./workspace
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
