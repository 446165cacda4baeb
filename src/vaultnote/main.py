#!/usr/bin/env python
"""Main entry point for the Vaultnote server."""
import argparse
import logging
import os
import sys
from pathlib import Path

import uvicorn

from vaultnote import __version__
from vaultnote.api.app import create_application
from vaultnote.config import config
from vaultnote.models.db_models import init_db
from vaultnote.observability import configure_logging


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Vaultnote server")
    parser.add_argument(
        "--database-path",
        help="SQLite database file path",
        type=str,
        default=os.environ.get("VAULTNOTE_DATABASE_PATH")
    )
    parser.add_argument(
        "--host",
        help="Interface to bind",
        type=str,
        default=None
    )
    parser.add_argument(
        "--port",
        help="Port to listen on",
        type=int,
        default=None
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("VAULTNOTE_LOG_LEVEL", "INFO")
    )
    return parser.parse_args()


def update_config(args):
    """Update the global config with command line arguments."""
    if args.database_path:
        config.database_path = Path(args.database_path)
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port


def main():
    """Run the Vaultnote HTTP server."""
    args = parse_args()
    update_config(args)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    try:
        log_dir = configure_logging(log_dir=config.log_dir, level=log_level, console=True)
    except OSError as e:
        # Fall back to console logging if the log directory is not writable
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_dir = None

    logger = logging.getLogger(__name__)
    if log_dir:
        logger.info(f"Persistent logging enabled: {log_dir}")

    # Single engine shared by all repositories
    try:
        db_url = config.get_db_url()
        logger.info(f"Using database: {db_url}")
        engine = init_db(db_url)
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        sys.exit(1)

    app = create_application(config, engine=engine)
    logger.info(f"Starting Vaultnote {__version__} on {config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
