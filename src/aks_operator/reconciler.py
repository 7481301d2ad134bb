"""Managed cluster reconciler.

Drives an AKS managed cluster towards a ClusterSpec:
1. Derive the complete ManagedCluster resource from the spec
2. Submit it with create-or-update (creates, updates or overwrites)
3. Surface the outcome; retries are the caller's decision

State transitions as seen from here:
    Absent  --reconcile--> Present
    Present --reconcile--> Present (updated)
    Present --delete-----> Absent
    Absent  --delete-----> Absent (no-op, success)

Each operation is one awaited call into the provider client. The blocking
SDK call runs in the default executor bounded by a timeout. Cancellation
and deadline expiry propagate unchanged; they are never wrapped as
ProviderError. No state is shared between calls, and concurrent calls for
the same cluster are not serialized.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.mgmt.containerservice.models import ManagedCluster

from .client import ManagedClusterClient
from .config import DEFAULT_OPERATION_TIMEOUT_SECONDS, Config
from .derivation import DerivationDefaults, build_managed_cluster
from .errors import ClusterNotFoundError, ProviderError, SpecValidationError
from .models import ClusterSpec

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _require_cluster_spec(spec: object) -> ClusterSpec:
    """Reject anything that is not a ClusterSpec before touching Azure."""
    if not isinstance(spec, ClusterSpec):
        raise SpecValidationError(
            f"expected managed cluster specification, got {type(spec).__name__}"
        )
    return spec


class ManagedClusterReconciler:
    """Get, reconcile and delete AKS managed clusters.

    The reconciler holds only immutable configuration, so one instance can
    serve concurrent callers.
    """

    def __init__(
        self,
        client: ManagedClusterClient,
        config: Config | None = None,
        defaults: DerivationDefaults | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            client: Provider client for the AKS control plane.
            config: Operator configuration. Only the operation timeout is used.
            defaults: Derivation defaults. Uses DerivationDefaults() if None.
        """
        self._client = client
        self._defaults = defaults or DerivationDefaults()
        self._timeout_seconds = (
            config.operation_timeout_seconds if config else DEFAULT_OPERATION_TIMEOUT_SECONDS
        )

    async def get(self, spec: ClusterSpec, *, timeout: float | None = None) -> ManagedCluster:
        """Fetch the current state of the cluster named by the spec.

        Raises:
            SpecValidationError: If spec is not a ClusterSpec.
            ClusterNotFoundError: If the cluster does not exist.
            ProviderError: On any other Azure failure.
        """
        spec = _require_cluster_spec(spec)

        try:
            return await self._execute_with_timeout(
                "get",
                functools.partial(self._client.get, spec.resource_group, spec.name),
                timeout,
            )
        except ResourceNotFoundError as e:
            raise ClusterNotFoundError(spec.resource_group, spec.name) from e
        except AzureError as e:
            raise self._provider_error("get", spec.resource_group, spec.name, e) from e

    async def get_credentials(
        self,
        resource_group: str,
        name: str,
        *,
        timeout: float | None = None,
    ) -> bytes:
        """Fetch the admin kubeconfig for a cluster as raw bytes.

        Nothing is cached or parsed.
        """
        if not all(isinstance(value, str) and value for value in (resource_group, name)):
            raise SpecValidationError("resource group and cluster name are required")

        try:
            return await self._execute_with_timeout(
                "get credentials for",
                functools.partial(self._client.get_credentials, resource_group, name),
                timeout,
            )
        except ResourceNotFoundError as e:
            raise ClusterNotFoundError(resource_group, name) from e
        except AzureError as e:
            raise self._provider_error("get credentials for", resource_group, name, e) from e

    async def reconcile(
        self, spec: ClusterSpec, *, timeout: float | None = None
    ) -> ManagedCluster:
        """Idempotently create or update the managed cluster.

        Derivation runs first; a SpecValidationError means Azure was never
        called. On provider failure the cluster is left in whatever state
        Azure left it, with no rollback.

        Returns:
            The ManagedCluster as returned by Azure.

        Raises:
            SpecValidationError: If the spec is invalid.
            ProviderError: If Azure rejects the create-or-update.
        """
        spec = _require_cluster_spec(spec)
        managed_cluster = build_managed_cluster(spec, self._defaults)

        logger.info(
            "Reconciling managed cluster",
            extra={
                "cluster": spec.name,
                "resource_group": spec.resource_group,
                "kubernetes_version": spec.version,
                "agent_pools": [pool.name for pool in spec.agent_pools],
            },
        )

        try:
            return await self._execute_with_timeout(
                "create or update",
                functools.partial(
                    self._client.create_or_update,
                    spec.resource_group,
                    spec.name,
                    managed_cluster,
                ),
                timeout,
            )
        except AzureError as e:
            raise self._provider_error(
                "create or update", spec.resource_group, spec.name, e
            ) from e

    async def delete(self, spec: ClusterSpec, *, timeout: float | None = None) -> None:
        """Delete the managed cluster; an absent cluster counts as deleted.

        Raises:
            SpecValidationError: If spec is not a ClusterSpec.
            ProviderError: On any Azure failure other than not-found.
        """
        spec = _require_cluster_spec(spec)

        logger.debug(
            "Deleting managed cluster",
            extra={"cluster": spec.name, "resource_group": spec.resource_group},
        )

        try:
            await self._execute_with_timeout(
                "delete",
                functools.partial(self._client.delete, spec.resource_group, spec.name),
                timeout,
            )
        except ResourceNotFoundError:
            logger.debug(
                "Managed cluster already deleted",
                extra={"cluster": spec.name, "resource_group": spec.resource_group},
            )
            return
        except AzureError as e:
            raise self._provider_error("delete", spec.resource_group, spec.name, e) from e

        logger.info(
            "Successfully deleted managed cluster",
            extra={"cluster": spec.name, "resource_group": spec.resource_group},
        )

    async def _execute_with_timeout(
        self,
        operation_name: str,
        call: Callable[[], T],
        timeout: float | None,
    ) -> T:
        """Run a blocking provider call in the executor with a timeout.

        Raises:
            TimeoutError: If the call exceeds the timeout.
        """
        timeout_seconds = timeout if timeout is not None else self._timeout_seconds
        loop = asyncio.get_event_loop()

        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, call),
                timeout=timeout_seconds,
            )
        except TimeoutError:
            logger.error(
                f"Managed cluster {operation_name} timed out",
                extra={"timeout_seconds": timeout_seconds},
            )
            raise

    def _provider_error(
        self,
        operation: str,
        resource_group: str,
        name: str,
        error: AzureError,
    ) -> ProviderError:
        extra: dict[str, Any] = {
            "operation": operation,
            "cluster": name,
            "resource_group": resource_group,
            "error": str(error),
            "error_type": type(error).__name__,
        }
        status_code = getattr(error, "status_code", None)
        if status_code is not None:
            extra["status_code"] = status_code

        logger.error("Azure API error on managed cluster", extra=extra)
        return ProviderError(operation, resource_group, name, error)
