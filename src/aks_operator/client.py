"""Provider client for AKS managed clusters.

The reconciler talks to Azure only through the ManagedClusterClient
protocol, so tests can substitute an in-memory double. Methods are
synchronous and block until Azure's long-running operations finish; the
reconciler moves them off the event loop.

Error contract:
- azure.core.exceptions.ResourceNotFoundError when the cluster is absent
- any other azure.core.exceptions.AzureError for everything else
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from azure.core.exceptions import AzureError
from azure.mgmt.containerservice import ContainerServiceClient
from azure.mgmt.containerservice.models import ManagedCluster

from .security import get_managed_identity_credential

if TYPE_CHECKING:
    from azure.core.credentials import TokenCredential

    from .config import Config

logger = logging.getLogger(__name__)


class ManagedClusterClient(Protocol):
    """Operations the reconciler needs from the AKS control plane."""

    def get(self, resource_group: str, name: str) -> ManagedCluster: ...

    def create_or_update(
        self, resource_group: str, name: str, resource: ManagedCluster
    ) -> ManagedCluster: ...

    def delete(self, resource_group: str, name: str) -> None: ...

    def get_credentials(self, resource_group: str, name: str) -> bytes: ...


class AzureManagedClusterClient:
    """ManagedClusterClient backed by the Azure container service SDK."""

    def __init__(self, credential: TokenCredential, subscription_id: str) -> None:
        self._client = ContainerServiceClient(
            credential=credential,
            subscription_id=subscription_id,
        )

    @classmethod
    def from_config(cls, config: Config) -> AzureManagedClusterClient:
        """Create a client authenticated with the operator's managed identity.

        Raises:
            SecretlessViolationError: If credential secrets are in the environment.
        """
        credential = get_managed_identity_credential(config.managed_identity_client_id)
        return cls(credential=credential, subscription_id=config.subscription_id)

    def get(self, resource_group: str, name: str) -> ManagedCluster:
        return self._client.managed_clusters.get(resource_group, name)

    def create_or_update(
        self, resource_group: str, name: str, resource: ManagedCluster
    ) -> ManagedCluster:
        poller = self._client.managed_clusters.begin_create_or_update(
            resource_group, name, resource
        )
        return poller.result()

    def delete(self, resource_group: str, name: str) -> None:
        poller = self._client.managed_clusters.begin_delete(resource_group, name)
        poller.result()

    def get_credentials(self, resource_group: str, name: str) -> bytes:
        """Return the first admin kubeconfig for the cluster."""
        results = self._client.managed_clusters.list_cluster_admin_credentials(
            resource_group, name
        )
        kubeconfigs = results.kubeconfigs or []
        if not kubeconfigs or kubeconfigs[0].value is None:
            raise AzureError(f"no admin kubeconfig returned for managed cluster {name}")

        logger.debug(
            "Fetched admin kubeconfig",
            extra={"cluster": name, "resource_group": resource_group},
        )
        return bytes(kubeconfigs[0].value)
