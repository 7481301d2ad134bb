"""Process setup for the AKS managed cluster operator.

SECRETLESS ARCHITECTURE:
The Azure client is always built on a ManagedIdentityCredential; service
principal secrets in the environment abort startup.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

from .client import AzureManagedClusterClient
from .config import Config
from .reconciler import ManagedClusterReconciler

# LogRecord attributes that are not user-supplied "extra" fields
_RESERVED_RECORD_ATTRS = frozenset({
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "exc_info",
    "exc_text",
    "thread",
    "threadName",
    "taskName",
    "message",
})


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: int = logging.INFO) -> None:
    """Configure structured logging with JSON output on stderr.

    stdout is left free for command output such as kubeconfigs.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Reduce noise from Azure SDK
    logging.getLogger("azure").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def create_reconciler(config: Config) -> ManagedClusterReconciler:
    """Build a reconciler wired to Azure with the operator's managed identity.

    Raises:
        SecretlessViolationError: If credential secrets are in the environment.
    """
    client = AzureManagedClusterClient.from_config(config)
    return ManagedClusterReconciler(client, config=config)
