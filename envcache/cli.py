"""
envcache Command-Line Interface
Inspect and manipulate a configured cache from the shell
"""

import argparse
import json
import os
import sys
from typing import List, Optional

from loguru import logger

from envcache.config.config_loader import ConfigLoader, LoggingConfig
from envcache.exceptions import CacheError
from envcache.stores.factory import create_cache


def setup_logging(settings: LoggingConfig) -> None:
    """Route loguru output to stderr (and optionally a rotating file)."""
    logger.remove()
    logger.add(sys.stderr, level=settings.level)
    if settings.file:
        logger.add(settings.file, level=settings.level, rotation=settings.rotation)


def parse_value(raw: str):
    """Parse a command-line value as JSON, falling back to the plain string."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="envcache",
        description="envcache - Encrypted Pluggable Cache",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  envcache set user:1 '{"name": "Ada"}' --ttl 60
  envcache get user:1
  envcache delete user:1
  envcache clear
  envcache sweep
  envcache stats
        """
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    set_parser = subparsers.add_parser("set", help="Store a value")
    set_parser.add_argument("key")
    set_parser.add_argument("value", help="JSON value (plain text is stored as a string)")
    set_parser.add_argument("--ttl", type=int, default=None, help="Seconds to live")

    get_parser = subparsers.add_parser("get", help="Print a value as JSON")
    get_parser.add_argument("key")

    delete_parser = subparsers.add_parser("delete", help="Delete a value")
    delete_parser.add_argument("key")

    subparsers.add_parser("clear", help="Remove every cache entry")
    subparsers.add_parser("sweep", help="Drop expired entries")
    subparsers.add_parser("stats", help="Print cache statistics")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # Set config path if provided
    if args.config:
        os.environ["ENVCACHE_CONFIG_PATH"] = args.config
        ConfigLoader.reset()

    try:
        config = ConfigLoader().config
        setup_logging(config.logging)
        cache = create_cache(config)

        if args.command == "set":
            cache.set(args.key, parse_value(args.value), ttl=args.ttl)
            print("OK")
        elif args.command == "get":
            value, found = cache.lookup(args.key)
            if not found:
                print(f"(miss) {args.key}", file=sys.stderr)
                return 1
            print(json.dumps(value, ensure_ascii=False))
        elif args.command == "delete":
            deleted = cache.delete(args.key)
            print("deleted" if deleted else "not found")
            return 0 if deleted else 1
        elif args.command == "clear":
            cache.clear()
            print("cleared")
        elif args.command == "sweep":
            print(f"removed {cache.sweep_expired()} entries")
        elif args.command == "stats":
            print(json.dumps(cache.get_stats(), indent=2))
    except (CacheError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
