"""CLI entry point."""

import argparse
import os
from typing import List, Optional

from common.logging_config import setup_logging
from cli import commands
from cli.repl import repl_loop

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='chunkferry',
        description='Interactive shell for resumable chunked uploads to a chunkferry coordinator.',
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Log everything at DEBUG level (overrides --log-level)',
    )
    parser.add_argument(
        '--log-level',
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help='Log level; defaults to the LOG_LEVEL env var or WARNING',
    )
    parser.add_argument(
        '--config',
        metavar='PATH',
        default=None,
        help='Config file to use instead of ~/.chunkferry/config.json',
    )
    return parser


def resolve_log_level(args: argparse.Namespace) -> str:
    """Pick the effective log level: --debug, then --log-level, then LOG_LEVEL."""
    if args.debug:
        return 'DEBUG'
    if args.log_level:
        return args.log_level
    return os.getenv('LOG_LEVEL', 'WARNING')


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for CLI."""
    args = build_parser().parse_args(argv)

    logger = setup_logging('cli', log_level=resolve_log_level(args))
    if args.debug:
        logger.info("Debug logging enabled")

    if args.config:
        commands.set_config_path(args.config)
        logger.info(f"Using config file {args.config}")

    logger.info("CLI starting...")
    try:
        repl_loop()
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        logger.info("CLI exiting")


if __name__ == "__main__":
    main()
