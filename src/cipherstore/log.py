"""
Logging setup for cipherstore.

Modules obtain their loggers with ``structlog.get_logger(__name__)``;
applications call :func:`configure_logging` once at startup to choose
the level and renderer.
"""

import logging

import structlog

from .config import CipherStoreConfig


def configure_logging(level: str | None = None, json: bool | None = None) -> None:
    """
    Configure structlog for the process.

    Args:
        level: Log level name, defaults to ``logging.level`` from config
        json: Render JSON lines instead of console output, defaults to
            ``logging.json`` from config
    """
    level_name = (level or str(CipherStoreConfig.get("logging.level", "INFO"))).upper()
    level_value = logging.getLevelName(level_name)
    unknown_level = not isinstance(level_value, int)
    if unknown_level:
        level_value = logging.INFO
    use_json = json if json is not None else bool(CipherStoreConfig.get("logging.json", False))

    renderer = (
        structlog.processors.JSONRenderer()
        if use_json
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        cache_logger_on_first_use=False,
    )

    if unknown_level:
        structlog.get_logger(__name__).warning("unknown_log_level", level=level_name, using="INFO")
