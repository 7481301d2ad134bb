"""Secretless credential acquisition.

Managed clusters are created with a system-assigned identity and the
service principal profile pinned to "msi". The operator holds itself to the
same rule: it authenticates with ManagedIdentityCredential only and will not
start while service principal or user password credentials are exported.
"""

from __future__ import annotations

import logging
import os

from azure.identity import ManagedIdentityCredential

logger = logging.getLogger(__name__)

# Any of these in the environment means a long-lived secret is reachable
FORBIDDEN_CREDENTIAL_ENV_VARS: tuple[str, ...] = (
    "AZURE_CLIENT_SECRET",
    "AZURE_CLIENT_CERTIFICATE_PATH",
    "AZURE_CLIENT_CERTIFICATE_PASSWORD",
    "AZURE_USERNAME",
    "AZURE_PASSWORD",
)


class SecretlessViolationError(Exception):
    """Raised when credential secrets are present in the environment."""


def find_leaked_credentials() -> list[str]:
    """Return the forbidden credential variables that are set and non-empty."""
    return [name for name in FORBIDDEN_CREDENTIAL_ENV_VARS if os.environ.get(name)]


def enforce_secretless_architecture() -> None:
    """Refuse to run with service principal or password credentials.

    Raises:
        SecretlessViolationError: Naming every forbidden variable that is set.
    """
    leaked = find_leaked_credentials()
    if not leaked:
        return

    logger.critical(
        "Refusing to start with credential secrets in the environment",
        extra={"security_event": "credential_detected", "env_vars": leaked},
    )
    raise SecretlessViolationError(
        f"{', '.join(leaked)} set. Managed clusters are reconciled with a managed "
        "identity only; remove service principal credentials from the environment."
    )


def get_managed_identity_credential(client_id: str | None = None) -> ManagedIdentityCredential:
    """Build the operator's credential once the environment is known to be clean.

    ``client_id`` selects a user-assigned identity; None selects the
    system-assigned one.
    """
    enforce_secretless_architecture()

    if not client_id:
        logger.info("Authenticating with system-assigned managed identity")
        return ManagedIdentityCredential()

    logger.info(
        "Authenticating with user-assigned managed identity",
        extra={"client_id": f"{client_id[:8]}..." if len(client_id) > 8 else client_id},
    )
    return ManagedIdentityCredential(client_id=client_id)
