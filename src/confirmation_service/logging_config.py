"""structlog configuration shared by the API, the Celery worker and scripts."""

import structlog

from confirmation_service.config import Settings


def configure_logging(settings: Settings) -> None:
    """Configure structlog processors and level filtering."""
    if settings.debug:
        renderers = [structlog.dev.ConsoleRenderer()]
    else:
        # JSON output carries the traceback as a string field.
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            *renderers,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
