import logging
from typing import Any

import structlog


def configure_logging(level: int | str = logging.INFO, json_output: bool = True) -> None:
    """Configure structlog/standard logging bridge.

    JSON lines are the default for hosted processes; the CLI switches to the
    console renderer so reload and snapshot events stay readable.
    """

    renderer: Any
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s")


def bind_context(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Bind contextual fields (environment, source, section) for downstream logs."""

    return structlog.get_logger().bind(**kwargs)
