"""Unit tests for structlog configuration."""

import io
import json
from collections.abc import Iterator

import pytest
import structlog

from confirmation_service.config import Settings
from confirmation_service.logging_config import configure_logging


@pytest.fixture
def restore_logging() -> Iterator[None]:
    yield
    configure_logging(Settings(app_env="test", debug=True))


def test_json_logs_include_traceback(restore_logging: None) -> None:
    configure_logging(Settings(app_env="test", debug=False, log_level="INFO"))
    output = io.StringIO()
    logger = structlog.wrap_logger(structlog.PrintLogger(output))

    try:
        raise RuntimeError("upstream exploded")
    except RuntimeError:
        logger.exception("Error syncing confirmations", correlation_id="guid-1")

    event = json.loads(output.getvalue())
    assert event["event"] == "Error syncing confirmations"
    assert event["correlation_id"] == "guid-1"
    assert "Traceback" in event["exception"]
    assert "RuntimeError: upstream exploded" in event["exception"]


def test_console_renderer_in_debug(restore_logging: None) -> None:
    configure_logging(Settings(app_env="test", debug=True))

    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
    assert structlog.processors.format_exc_info not in processors
