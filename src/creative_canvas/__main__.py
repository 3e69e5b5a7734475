"""
Entry point for running Creative Canvas as a module.

Usage:
    python -m creative_canvas validate graph.json
"""

import sys

from creative_canvas.main import main

if __name__ == "__main__":
    sys.exit(main())
