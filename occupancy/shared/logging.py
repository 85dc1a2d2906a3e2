"""
Logging Configuration - Shared Layer

Configures the standard library logging handlers and routes every record
through structlog, so that both ``logging`` and ``structlog`` loggers share
the same renderer (console for development, JSON for production).
"""

import logging
import os
import sys
from typing import Any, Dict, List, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from occupancy.shared.consts import EnumEnvironment

SERVICE_NAME = "occupancy-core"

# pymongo emits connection and command chatter at DEBUG
NOISY_LOGGERS = ("pymongo", "pymongo.command", "pymongo.connection")


def _get_log_config_from_env() -> Dict[str, Optional[str]]:
    """Bootstrap logging options read before the settings object exists."""
    return {
        "level": os.environ.get("LOG_LEVEL", "INFO"),
        "file_path": os.environ.get("LOG_FILE_PATH"),
    }


def _add_service_name(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _pre_chain() -> List[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _add_service_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(
    level: Optional[str] = None,
    file_path: Optional[str] = None,
    environment: str = "development",
) -> None:
    """
    Configure the logging system.

    Args:
        level: Optional override for the log level.
        file_path: Optional file to log to in addition to stdout.
        environment: Application environment; production renders JSON lines.
    """
    env_config = _get_log_config_from_env()

    log_level = level or env_config["level"] or "INFO"
    log_file = file_path or env_config["file_path"]
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    renderer: Processor
    if environment.lower() == EnumEnvironment.PRODUCTION.value:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=_pre_chain(),
    )
    for handler in handlers:
        handler.setFormatter(formatter)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_pre_chain(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.handlers = handlers
    root_logger.setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    get_logger(__name__).info(
        "logging.configured", level=log_level, file_path=log_file
    )


def update_logging_from_settings(settings: Any) -> None:
    """
    Re-apply the logging configuration from the application settings.

    Args:
        settings: The ``AppSettings`` object (or anything shaped like it).
    """
    level = settings.logging.level
    environment = settings.environment
    configure_logging(
        level=level.value if hasattr(level, "value") else level,
        file_path=settings.logging.file_path,
        environment=(
            environment.value if hasattr(environment, "value") else environment
        ),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger configured for the project."""
    return structlog.get_logger(name)
