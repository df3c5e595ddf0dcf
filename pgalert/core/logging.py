"""structlog wiring for pgalert.

Every event passes through the stdlib root handler so that library logs
and pgalert's own events share one renderer. Suppression and escalation
decisions go to the ``decision_log`` logger, whose level is switched by
``logging.decision_log`` independently of the root level.
"""

from __future__ import annotations

import logging
import sys

import structlog

from pgalert.core.config import LoggingConfig, get_settings

DECISION_LOGGER = "decision_log"
SERVICE_NAME = "pgalert"


def _add_service(
    _logger: object, _method: str, event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_service,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _renderer(fmt: str) -> structlog.types.Processor:
    if fmt == "console":
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def _root_handler(fmt: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(fmt),
        ],
    ))
    return handler


def _apply_levels(root_level: int, cfg: LoggingConfig) -> None:
    root = logging.getLogger()
    root.setLevel(root_level)
    if root_level > logging.DEBUG:
        for name in cfg.quiet_loggers:
            logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger(DECISION_LOGGER).setLevel(
        logging.INFO if cfg.decision_log else logging.WARNING,
    )


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Route structlog through the stdlib root logger.

    Args:
        level: Root level override (e.g. "DEBUG"). Uses config if None.
        fmt: "json" or "console". Uses config if None; unknown values
            render JSON.
    """
    cfg = get_settings().logging
    root_level = getattr(logging, (level or cfg.level).upper(), logging.INFO)

    structlog.configure(
        processors=[*_pre_chain(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_root_handler(fmt or cfg.format))
    _apply_levels(root_level, cfg)
