"""Command-line entry point.

Usage:
    # Serve the webhooks and dashboard API on PORT (default)
    python -m equiledger --serve

    # Ask the assistant something on behalf of a business
    python -m equiledger --business-id=<id> "Invoice Acme R5000 for web design"
"""

import argparse
import asyncio
import sys

import structlog

from equiledger.config import configure_logging, get_settings
from equiledger.conversation import process_message
from equiledger.db.session import init_db

logger = structlog.get_logger(__name__)


def serve(host: str, port: int) -> None:
    import uvicorn

    from equiledger.api import create_app

    uvicorn.run(create_app(), host=host, port=port, log_config=None)


async def ask(business_id: str, message: str) -> str:
    init_db()
    return await process_message(business_id, message)


def main(argv: list[str] | None = None) -> None:
    settings = get_settings()
    configure_logging()

    parser = argparse.ArgumentParser(
        description="EquiLedger financial assistant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                   # Serve the API on PORT
  %(prog)s --serve --port=8080               # Serve on another port
  %(prog)s --business-id=abc "Show my unpaid invoices"
        """,
    )
    parser.add_argument("--serve", action="store_true", help="Run the HTTP server (default)")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    parser.add_argument(
        "--port", type=int, default=settings.port, help=f"Port (default: {settings.port})"
    )
    parser.add_argument("--business-id", help="Business to act for when sending a message")
    parser.add_argument("message", nargs="*", help="Message for the assistant")

    args = parser.parse_args(argv)
    message = " ".join(args.message)

    if message and not args.serve:
        if not args.business_id:
            parser.error("--business-id is required when sending a message")
        try:
            print(asyncio.run(ask(args.business_id, message)))
        except KeyboardInterrupt:
            logger.info("interrupted")
        except Exception as e:
            logger.exception("cli_error", error=str(e))
            sys.exit(1)
        return

    logger.info("starting_server", host=args.host, port=args.port)
    serve(args.host, args.port)


if __name__ == "__main__":
    main()
