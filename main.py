"""Entry point that runs the support inbox demo."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from config import Settings, configure_logging
from demo import DEFAULT_EMAIL, run_demo
from errors import DemoError
from extract_demo import extract_event
from llm_client import ModelClient

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "email",
        nargs="?",
        default=DEFAULT_EMAIL,
        help="customer email to route to a tool",
    )
    parser.add_argument(
        "--extract",
        metavar="TEXT",
        help="extract a calendar event from TEXT instead of routing an email",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = Settings.from_env()
        configure_logging(settings)
        client = ModelClient(settings)
        try:
            if args.extract is not None:
                extract_event(client, args.extract, settings=settings)
            else:
                selection = run_demo(client, args.email, settings=settings)
                print(selection)
        finally:
            client.close()
    except DemoError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
