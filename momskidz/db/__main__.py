from __future__ import annotations

import argparse
import sys

from momskidz.config import get_settings
from momskidz.db.init import initialize_database
from momskidz.db.session import get_engine
from momskidz.observability.logging import configure_logging


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="python -m momskidz.db", description="Mom's Kidz database tools")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init", help="Create tables and seed the default challenges")
    args = parser.parse_args(argv)

    configure_logging(get_settings().log_level)

    if args.command == "init":
        initialize_database(get_engine())
    return 0


if __name__ == "__main__":
    sys.exit(main())
