"""
Entry point for: python3 -m location_client

Runs the location tracker command-line interface.
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
