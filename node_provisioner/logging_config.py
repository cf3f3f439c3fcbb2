"""
Node Provisioner Logging
========================

Structured JSON logging for production.
Plain text logging for development.

Provisioning code passes the run it is working on through ``extra=``
(family, hostname, order, node, stage and failure reason, see
``ProvisioningProgress.log_context``). The JSON formatter emits those as
top-level keys; the text formatter appends them as ``key=value`` pairs
so a failed run reads the same in both.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Dict

# Order is the order keys appear in text output
CONTEXT_FIELDS = ("family_id", "hostname", "order_id", "node_id", "stage", "reason")

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

NOISY_LOGGERS = ("httpx", "httpcore")


def provisioning_context(record: logging.LogRecord) -> Dict[str, object]:
    """Provisioning fields attached to a record, skipping empty ones."""
    context = {}
    for key in CONTEXT_FIELDS:
        value = getattr(record, key, None)
        if value is not None and value != "":
            context[key] = value
    return context


class JSONFormatter(logging.Formatter):
    """Output log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(provisioning_context(record))

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class ContextTextFormatter(logging.Formatter):
    """Plain text lines with the provisioning context appended."""

    def __init__(self):
        super().__init__(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = provisioning_context(record)
        if context:
            line += " [" + " ".join(f"{key}={value}" for key, value in context.items()) + "]"
        return line


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        fmt: Format - "json" for structured, "text" for plain
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if fmt == "json" else ContextTextFormatter())
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
