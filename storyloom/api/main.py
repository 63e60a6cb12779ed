"""
storyloom API server entry point.

Run with:
    python -m storyloom.api.main path/to/story.json
"""

import argparse
import logging

import uvicorn

from ..state.errors import StoryError
from .server import create_app


logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the API server."""
    parser = argparse.ArgumentParser(description="storyloom API server")
    parser.add_argument("story", help="Story document (.json, .yaml or .yml)")
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)",
    )
    parser.add_argument("--saves", default="saves", help="Saves directory (default: saves)")
    parser.add_argument("--seed", type=int, help="Seed for skill check rolls")
    parser.add_argument("--strict", action="store_true", help="Report unknown conditions and effects")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    try:
        app = create_app(args.story, saves_dir=args.saves, seed=args.seed, strict=args.strict)
    except StoryError as e:
        logger.error("Cannot serve %s: %s", args.story, e)
        return 1

    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level="debug" if args.debug else "info",
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
