"""Azure API mock for AKS managed cluster tests.

Provides:
- MockManagedClusterClient: in-memory ManagedClusterClient with call
  recording and per-operation error injection
- UnreachableClient: fails the test if the provider is called at all
- MockAzureContext: patches the managed identity credential and
  ContainerServiceClient so the real Azure adapter runs against memory

Usage:
    from azure_mock import MockManagedClusterClient

    client = MockManagedClusterClient()
    reconciler = ManagedClusterReconciler(client)
    await reconciler.reconcile(spec)

    assert client.state.cluster_count == 1
"""

from .clusters import MockCall, MockClusterState, MockManagedClusterClient, UnreachableClient
from .context import MockAzureContext
from .credential import MockManagedIdentityCredential, create_mock_credential

__all__ = [
    "MockAzureContext",
    "MockCall",
    "MockClusterState",
    "MockManagedClusterClient",
    "MockManagedIdentityCredential",
    "UnreachableClient",
    "create_mock_credential",
]
