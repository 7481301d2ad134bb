"""Tests for loading cluster specs from YAML."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from aks_operator.config import MAX_SPEC_FILE_SIZE_BYTES
from aks_operator.spec_loader import SpecLoadError, load_spec, parse_spec


def _write(path: Path, data: Any) -> Path:
    path.write_text(yaml.dump(data))
    return path


class TestLoadSpec:
    """Tests for load_spec."""

    def test_flat_document(self, tmp_path: Path, cluster_data: dict[str, Any]) -> None:
        spec = load_spec(_write(tmp_path / "cluster.yaml", cluster_data))

        assert spec.name == "aks-test"
        assert spec.agent_pools[0].replicas == 3

    def test_wrapped_document(self, tmp_path: Path, cluster_data: dict[str, Any]) -> None:
        document = {
            "apiVersion": "aks-operator/v1",
            "kind": "ManagedCluster",
            "metadata": {"name": "aks-test"},
            "spec": cluster_data,
        }

        spec = load_spec(_write(tmp_path / "cluster.yaml", document))

        assert spec.resource_group == "rg-aks-test"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SpecLoadError) as exc_info:
            load_spec(tmp_path / "absent.yaml")

        assert "not found" in str(exc_info.value)

    def test_oversized_file(self, tmp_path: Path) -> None:
        path = tmp_path / "huge.yaml"
        path.write_text("#" * (MAX_SPEC_FILE_SIZE_BYTES + 1))

        with pytest.raises(SpecLoadError) as exc_info:
            load_spec(path)

        assert "maximum size" in str(exc_info.value)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("name: [unclosed\n")

        with pytest.raises(SpecLoadError) as exc_info:
            load_spec(path)

        assert "Invalid YAML" in str(exc_info.value)

    def test_non_utf8_file(self, tmp_path: Path) -> None:
        path = tmp_path / "latin1.yaml"
        path.write_bytes(b"name: \xff\xfe bad\n")

        with pytest.raises(SpecLoadError) as exc_info:
            load_spec(path)

        assert "Cannot read spec file" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_validation_errors_listed(self, tmp_path: Path, cluster_data: dict[str, Any]) -> None:
        cluster_data["agentPools"][0]["replicas"] = -2
        del cluster_data["location"]

        with pytest.raises(SpecLoadError) as exc_info:
            load_spec(_write(tmp_path / "cluster.yaml", cluster_data))

        message = str(exc_info.value)
        assert "  - location:" in message
        assert "  - agentPools.0.replicas:" in message


class TestParseSpec:
    """Tests for parse_spec."""

    @pytest.mark.parametrize("raw", [None, [], "aks-test", 42])
    def test_non_mapping_rejected(self, raw: Any) -> None:
        with pytest.raises(SpecLoadError) as exc_info:
            parse_spec(raw, "inline")

        assert "mapping" in str(exc_info.value)

    def test_non_mapping_spec_section(self) -> None:
        with pytest.raises(SpecLoadError):
            parse_spec({"apiVersion": "aks-operator/v1", "spec": ["not", "a", "mapping"]})

    def test_source_named_in_error(self, cluster_data: dict[str, Any]) -> None:
        cluster_data["name"] = ""

        with pytest.raises(SpecLoadError) as exc_info:
            parse_spec(cluster_data, "clusters/prod.yaml")

        assert "clusters/prod.yaml" in str(exc_info.value)
