"""Command-line entry point for anibridge."""

import argparse
import sys

import uvicorn

from . import __version__, config, logger
from .webserver import app


def create_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="anibridge",
        description="Serve anime release RSS feeds as a Torznab indexer.",
    )
    parser.add_argument(
        "-c",
        "--config",
        help=f"path to the YAML config file (default: ${config.CONFIG_ENV_VAR} "
        f"or ./{config.DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument("--host", help="interface to bind (overrides config)")
    parser.add_argument("--port", type=int, help="port to bind (overrides config)")
    parser.add_argument(
        "-l",
        "--loglevel",
        choices=["debug", "info", "warning", "error", "critical"],
        help="log level (overrides config)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, load configuration and run the HTTP server.

    Args:
        argv: Arguments without the program name. Defaults to ``sys.argv[1:]``.

    Returns:
        Process exit code.
    """
    args = create_argument_parser().parse_args(argv)
    logger.init_logger(args.loglevel or "info")

    try:
        cfg = config.init_config(args.config)
    except (OSError, ValueError) as e:
        logger.critical("Failed to load configuration: %s", e)
        return 1

    loglevel = args.loglevel or cfg.global_config.loglevel
    logger.init_logger(loglevel)

    host = args.host or cfg.server.host
    port = args.port or cfg.server.port
    logger.header(f"anibridge {__version__}")
    logger.info("Listening on %s:%d", host, port)

    uvicorn.run(app, host=host, port=port, log_level=loglevel.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
