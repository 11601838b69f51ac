#!/usr/bin/env python3
"""Main entry point for shelfscan package."""

import sys
from shelfscan.cli import main

if __name__ == "__main__":
    sys.exit(main())
