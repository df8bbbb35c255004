"""
Online Subscriptions CLI

Commands:
  serve     - Run the HTTP server
  init-db   - Create the database schema
"""

import argparse
import sys

import structlog

from .config import get_settings
from .logging_config import configure_logging

logger = structlog.get_logger()


def cmd_serve(args):
    """Run the HTTP server."""
    import uvicorn

    settings = get_settings()
    host = args.host or settings.host
    port = args.port or settings.port

    logger.info("server_starting", host=host, port=port, env=settings.env)

    uvicorn.run(
        "subscriptions.api.server:app",
        host=host,
        port=port,
        reload=args.reload,
        workers=args.workers,
    )


def cmd_init_db(args):
    """Create the schema and exit."""
    from .persistence.database import Database, StorageError

    url = args.database_url or get_settings().database_url
    db = Database(url)
    try:
        db.initialize()
    except StorageError as e:
        print(f"Error: could not initialize database: {e}")
        sys.exit(1)
    finally:
        db.close()

    print(f"Database ready: {'postgres' if db.is_postgres else 'sqlite'}")


def main(argv=None):
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)

    parser = argparse.ArgumentParser(
        description="Online Subscriptions - subscription record service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the server")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--reload", action="store_true")
    serve_parser.add_argument("--workers", type=int, default=1)

    # init-db
    init_parser = subparsers.add_parser("init-db", help="Create the database schema")
    init_parser.add_argument("--database-url", help="Overrides DATABASE_URL")

    args = parser.parse_args(argv)

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "init-db":
        cmd_init_db(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
