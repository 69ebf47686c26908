import argparse
import logging
import sys
from typing import List, Optional
from pydantic import ValidationError
import structlog

from config import Settings, get_settings
from csv_io import TransactionReader, write_accounts
from exceptions import IOFailure
from services import Engine

logger = structlog.get_logger()


def configure_logging(settings: Settings) -> None:
    """Structured logging on stderr; stdout is reserved for the report."""
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, settings.log_level),
        format="%(message)s",
        force=True,
    )

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payments-ledger",
        description="Apply a CSV stream of client transactions and print the resulting account balances.",
    )
    parser.add_argument("path", help="CSV file with type, client, tx, amount columns")
    return parser


def run(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        parser.exit(1, f"{parser.prog}: error: invalid settings: {e}\n")
    configure_logging(settings)

    engine = Engine.empty()
    reader = TransactionReader(args.path, engine.summary)
    try:
        engine.run(reader)
        rows = write_accounts(engine, sys.stdout)
    except IOFailure as e:
        logger.error("Run aborted", **e.to_dict())
        parser.exit(1, f"{parser.prog}: error: {e}\n")

    logger.info(
        "Report written",
        path=args.path,
        accounts_count=rows,
        rows_dropped=engine.summary.dropped,
        drops=dict(engine.summary.drops)
    )
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
