"""Command line entry point: ``upload-ai [serve|seed]``."""

import argparse
import logging
import sys
from typing import Optional

import uvicorn

from .config import Settings
from .seed import seed_prompts
from .store import RecordStore


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # Keep request-level noise from the HTTP client out of the console
    logging.getLogger("httpx").setLevel(logging.WARNING)


def serve(settings: Settings) -> None:
    uvicorn.run(
        "upload_ai.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


def seed(settings: Settings) -> None:
    store = RecordStore(settings.database_path)
    try:
        seed_prompts(store)
    finally:
        store.close()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="upload-ai", description="Upload AI HTTP backend")
    parser.add_argument("command", nargs="?", choices=("serve", "seed"), default="serve")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.debug else logging.INFO)
    settings = Settings.from_env()

    if args.command == "seed":
        seed(settings)
    else:
        serve(settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
