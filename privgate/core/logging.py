"""Logging setup.

All modules log through ``logger`` (or a child obtained via ``with_context``)
so that identity dimensions such as ``request_id`` or ``subscription_id``
travel with every record.

Usage:
    from privgate.core.logging import logger

    log = logger.with_context(request_id="abc", subscription_id=str(sub_id))
    log.info("Privilege used")
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping

from privgate.core.config import settings

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render records as single-line JSON documents, dimensions included."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that attaches a fixed set of dimensions to every record."""

    def __init__(self, logger: logging.Logger, dimensions: dict[str, Any] | None = None):
        """Wrap ``logger`` with the given dimensions."""
        super().__init__(logger, dimensions or {})
        self.dimensions: dict[str, Any] = dict(dimensions or {})

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.dimensions)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a new logger with ``dimensions`` merged into the current ones."""
        merged = {**self.dimensions, **{k: v for k, v in dimensions.items() if v is not None}}
        return ContextualLogger(self.logger, merged)


class LoggerConfigurator:
    """Builds the root application logger once per process."""

    @staticmethod
    def configure_logger(name: str) -> ContextualLogger:
        base = logging.getLogger(name)
        base.setLevel(settings.LOG_LEVEL.upper())
        if not base.handlers:
            handler = logging.StreamHandler(sys.stdout)
            if settings.is_local:
                handler.setFormatter(
                    logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
                )
            else:
                handler.setFormatter(JSONFormatter())
            base.addHandler(handler)
        base.propagate = False
        return ContextualLogger(base)


logger = LoggerConfigurator.configure_logger("privgate")
