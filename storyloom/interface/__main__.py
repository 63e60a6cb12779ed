"""
Play a story in the terminal.

Usage:
    python -m storyloom.interface play path/to/story.json
"""

import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())
