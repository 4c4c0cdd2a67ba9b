"""structlog configuration.

Learn: Every module logs with ``structlog.get_logger()`` and dotted event
names ("auth.login_succeeded"). This module decides how those events are
rendered: JSON lines in production (for the log collector), a readable
console format in development. Stdlib loggers (uvicorn, sqlalchemy) are
routed through the same processors so all output looks alike.
"""

import logging
import sys

import structlog

from teamhub.config import Settings


def configure_logging(app_settings: Settings) -> None:
    """Configure structlog and the stdlib root logger."""
    level = logging.getLevelName(app_settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if app_settings.log_json or app_settings.is_production:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors
        + [
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # SQL echo is controlled by Settings.debug on the engine, not here.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
