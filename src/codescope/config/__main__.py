"""CLI entry point for configuration introspection.

Usage:
    python -m codescope.config
    python -m codescope.config --check
    python -m codescope.config --json
"""

import sys

from .api import main

if __name__ == "__main__":
    sys.exit(main())
