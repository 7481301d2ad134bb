"""Error taxonomy for managed cluster reconciliation.

Three failure classes reach the caller:
- SpecValidationError: the spec is unusable before any Azure call is made
- ClusterNotFoundError: the managed cluster does not exist in Azure
- ProviderError: any other Azure failure (auth, quota, conflict, transient)

Nothing here is retried. Retry and backoff belong to whoever drives the
reconciler.
"""

from __future__ import annotations

from azure.core.exceptions import AzureError, HttpResponseError


class ManagedClusterError(Exception):
    """Base class for managed cluster reconciliation errors."""

    pass


class SpecValidationError(ManagedClusterError):
    """Raised when a cluster spec is contradictory or malformed.

    Always raised before the provider client is called.
    """

    pass


class ClusterNotFoundError(ManagedClusterError):
    """Raised when the named managed cluster does not exist."""

    def __init__(self, resource_group: str, name: str) -> None:
        self.resource_group = resource_group
        self.name = name
        super().__init__(f"managed cluster {name} not found in resource group {resource_group}")


class ProviderError(ManagedClusterError):
    """Raised when the Azure API fails for any reason other than not-found.

    The original Azure exception is chained as ``__cause__``.
    """

    def __init__(
        self,
        operation: str,
        resource_group: str,
        name: str,
        cause: AzureError | None = None,
    ) -> None:
        self.operation = operation
        self.resource_group = resource_group
        self.name = name
        self.cause = cause

        message = (
            f"failed to {operation} managed cluster {name} in resource group {resource_group}"
        )
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)

    @property
    def status_code(self) -> int | None:
        """HTTP status code of the underlying Azure error, if any."""
        if isinstance(self.cause, HttpResponseError):
            return self.cause.status_code
        return None
