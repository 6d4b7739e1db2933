#!/usr/bin/env python3
"""CLI script to run one lab confirmation sync pass and print the summary."""

import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import orjson
import structlog

from confirmation_service.config import get_settings
from confirmation_service.logging_config import configure_logging
from confirmation_service.services.confirmation_sync import execute_confirmation_sync

logger = structlog.get_logger()


async def main() -> int:
    """Main sync function."""
    settings = get_settings()
    configure_logging(settings)

    logger.info("Starting confirmation sync")
    status_code, body = await execute_confirmation_sync(settings)
    sys.stdout.write(orjson.dumps(body, option=orjson.OPT_INDENT_2).decode() + "\n")

    if status_code != 200:
        logger.error("Confirmation sync failed", details=body.get("details"))
        return 1

    logger.info("Confirmation sync completed", **body["summary"])
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
