#!/usr/bin/env python3
"""
Main entry point for the HTTP status checker.
"""

import sys

from httpcheck.cli import main


if __name__ == '__main__':
    sys.exit(main())
