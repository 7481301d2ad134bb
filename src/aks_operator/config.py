"""Operator configuration.

Read from the environment once per process, validated on construction and
immutable afterwards. Cluster-level settings live in the ClusterSpec, not
here.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterator
from dataclasses import dataclass


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""


# AKS create can take well over ten minutes
DEFAULT_OPERATION_TIMEOUT_SECONDS = 1800
MIN_OPERATION_TIMEOUT_SECONDS = 30
MAX_OPERATION_TIMEOUT_SECONDS = 7200

# Upper bound on a spec file read from disk
MAX_SPEC_FILE_SIZE_BYTES = 1024 * 1024

_GUID_PATTERN = re.compile(r"^[0-9a-f]{8}(-[0-9a-f]{4}){3}-[0-9a-f]{12}$", re.IGNORECASE)


def _env_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer: {raw}") from e


@dataclass(frozen=True)
class Config:
    """Settings shared by every reconcile, get and delete call.

    Every problem found is reported together in a single ConfigurationError.
    """

    subscription_id: str

    # None selects the system-assigned identity
    managed_identity_client_id: str | None = None

    # Per Azure call, including waiting on long-running pollers
    operation_timeout_seconds: int = DEFAULT_OPERATION_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        problems = list(self._validate())
        if problems:
            raise ConfigurationError(
                "Configuration validation failed:\n  - " + "\n  - ".join(problems)
            )

    def _validate(self) -> Iterator[str]:
        if not self.subscription_id:
            yield "AZURE_SUBSCRIPTION_ID is required"
        elif not _GUID_PATTERN.match(self.subscription_id):
            yield f"AZURE_SUBSCRIPTION_ID must be a valid GUID: {self.subscription_id}"

        timeout = self.operation_timeout_seconds
        if not MIN_OPERATION_TIMEOUT_SECONDS <= timeout <= MAX_OPERATION_TIMEOUT_SECONDS:
            yield (
                f"OPERATION_TIMEOUT must be between {MIN_OPERATION_TIMEOUT_SECONDS} "
                f"and {MAX_OPERATION_TIMEOUT_SECONDS} seconds, got {timeout}"
            )

    @classmethod
    def from_env(cls) -> Config:
        """Build configuration from the process environment.

        AZURE_SUBSCRIPTION_ID (required), AZURE_CLIENT_ID (optional
        user-assigned identity) and OPERATION_TIMEOUT (seconds, default 1800).
        """
        return cls(
            subscription_id=os.environ.get("AZURE_SUBSCRIPTION_ID", ""),
            managed_identity_client_id=os.environ.get("AZURE_CLIENT_ID") or None,
            operation_timeout_seconds=_env_int(
                "OPERATION_TIMEOUT", DEFAULT_OPERATION_TIMEOUT_SECONDS
            ),
        )
