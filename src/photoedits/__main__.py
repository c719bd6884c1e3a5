"""
Entry point for running PhotoEdits as a module.

Usage:
    python -m photoedits apply photo.png -e sepia -o out.png
"""

import sys

from photoedits.main import main

if __name__ == "__main__":
    sys.exit(main())
