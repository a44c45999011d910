#!/usr/bin/env python3
"""
SERVIPRO authentication backend.

Runs the HTTP API, and a couple of maintenance commands against the
configured store.
"""

import argparse
import logging
import sys

from servipro.auth import SessionStore, VerificationStore
from servipro.config import load_config
from servipro.errors import ConfigError, StorageError
from servipro.log import setup_logging
from servipro.storage import create_store


def cmd_serve(args, config) -> int:
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=args.host or config.host,
        port=args.port or config.port,
        reload=args.reload,
        log_config=None
    )
    return 0


def cmd_check(args, config) -> int:
    """Validate configuration and storage connectivity."""
    logger = logging.getLogger("servipro")
    logger.info(f"Environment: {config.environment}")
    logger.info(f"Storage backend: {config.storage.backend}")

    store = create_store(config.storage)
    try:
        if not store.ping():
            logger.error("Storage is not reachable")
            return 1
    finally:
        store.close()

    logger.info("Configuration OK")
    return 0


def cmd_purge(args, config) -> int:
    """Remove expired verification codes and refresh sessions once."""
    logger = logging.getLogger("servipro")
    if config.storage.backend == "mongodb":
        logger.info("MongoDB removes expired documents through its TTL indexes")
        return 0

    store = create_store(config.storage)
    try:
        # Registers the collections and their TTLs with the store
        VerificationStore(store, ttl_seconds=config.auth.verification_ttl_seconds)
        SessionStore(store, ttl_seconds=config.auth.refresh_ttl_seconds)
        removed = store.purge_expired()
    finally:
        store.close()

    logger.info(f"Purged {removed} expired documents")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="SERVIPRO phone authentication backend"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument(
        "--host",
        type=str,
        help="Bind address (default: HOST or 0.0.0.0)"
    )
    serve.add_argument(
        "--port",
        type=int,
        help="Port (default: PORT or 3000)"
    )
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development)"
    )
    serve.set_defaults(handler=cmd_serve)

    check = subparsers.add_parser("check", help="Validate configuration and storage")
    check.set_defaults(handler=cmd_check)

    purge = subparsers.add_parser("purge", help="Purge expired codes and refresh tokens")
    purge.set_defaults(handler=cmd_purge)

    args = parser.parse_args()

    try:
        config = load_config()
    except ConfigError as e:
        setup_logging("INFO")
        for problem in e.problems:
            logging.getLogger("servipro").error(problem)
        return 1

    setup_logging("DEBUG" if args.verbose else config.log_level, config.log_dir)

    try:
        return args.handler(args, config)
    except KeyboardInterrupt:
        logging.getLogger("servipro").info("Interrupted by user")
        return 0
    except StorageError as e:
        logging.getLogger("servipro").error(f"Storage error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
