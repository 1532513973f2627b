"""Entry point for running the application with uvicorn.

Usage:
    python -m payroll_adjustments
    python -m payroll_adjustments --create-schema
"""

import argparse
import asyncio
import logging

import uvicorn

from payroll_adjustments.config import get_settings
from payroll_adjustments.database import create_schema, dispose_db

logger = logging.getLogger(__name__)


async def _create_schema() -> None:
    try:
        await create_schema()
    finally:
        await dispose_db()


def main(argv: list[str] | None = None) -> None:
    """Run the application."""
    parser = argparse.ArgumentParser(description="Payroll adjustments API")
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables on DATABASE_URL and exit",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.create_schema:
        database = settings.database_url.split("@")[-1]
        logger.info("Creating schema on %s", database)
        asyncio.run(_create_schema())
        return

    uvicorn.run(
        "payroll_adjustments.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
