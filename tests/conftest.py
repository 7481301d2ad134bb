"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from typing import Any

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for azure_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

TEST_SSH_KEY = "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQC7 test@example.com"


@pytest.fixture
def cluster_data() -> dict[str, Any]:
    """Minimal valid cluster spec as it would appear in YAML."""
    return {
        "name": "aks-test",
        "resourceGroup": "rg-aks-test",
        "location": "westeurope",
        "version": "1.29.2",
        "sshPublicKey": TEST_SSH_KEY,
        "agentPools": [
            {"name": "pool0", "sku": "Standard_D2s_v3", "replicas": 3, "osDiskSizeGB": 128},
        ],
    }


@pytest.fixture
def make_spec(cluster_data: dict[str, Any]) -> Any:
    """Factory building a ClusterSpec from cluster_data plus overrides."""
    from aks_operator.models import ClusterSpec

    def _make(**overrides: Any) -> ClusterSpec:
        return ClusterSpec.model_validate({**cluster_data, **overrides})

    return _make
