"""Pydantic models for managed cluster specifications.

These models provide:
1. Type-safe YAML parsing
2. Validation at the boundary (fail fast, fail loudly)
3. Immutable values the derivation engine reads but never writes
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator


class LoadBalancerSku(str, Enum):
    """Load balancer SKUs supported for managed clusters."""

    STANDARD = "Standard"
    BASIC = "Basic"


class NetworkPlugin(str, Enum):
    """Network plugins supported for managed clusters."""

    AZURE = "Azure"
    KUBENET = "Kubenet"


def _match_enum(enum_cls: type[Enum], value: Any) -> Any:
    """Resolve a string to an enum member ignoring case."""
    if not isinstance(value, str):
        return value
    for member in enum_cls:
        if member.value.lower() == value.lower():
            return member
    return value


class PoolSpec(BaseModel):
    """Desired state of one agent pool within a cluster."""

    model_config = {"extra": "ignore", "frozen": True, "populate_by_name": True}

    name: Annotated[str, Field(min_length=1)]
    sku: Annotated[str, Field(min_length=1)]
    replicas: Annotated[int, Field(ge=0)]
    os_disk_size_gb: Annotated[int, Field(gt=0, alias="osDiskSizeGB")]


class ClusterSpec(BaseModel):
    """Desired state of one AKS managed cluster.

    Optional network fields left as None fall back to the derivation
    defaults. ``network_policy`` stays a plain string: an unrecognised
    value is rejected during derivation, not silently defaulted here.
    """

    model_config = {"extra": "ignore", "frozen": True, "populate_by_name": True}

    name: Annotated[str, Field(min_length=1)]
    resource_group: Annotated[str, Field(min_length=1, alias="resourceGroup")]
    location: Annotated[str, Field(min_length=1)]
    version: Annotated[str, Field(min_length=1)]
    ssh_public_key: str = Field(alias="sshPublicKey")
    tags: dict[str, str] = Field(default_factory=dict)

    load_balancer_sku: LoadBalancerSku | None = Field(None, alias="loadBalancerSKU")
    network_plugin: NetworkPlugin | None = Field(None, alias="networkPlugin")
    network_policy: str | None = Field(None, alias="networkPolicy")

    pod_cidr: str | None = Field(None, alias="podCIDR")
    service_cidr: str | None = Field(None, alias="serviceCIDR")

    # Order is significant and duplicates are passed through untouched
    agent_pools: list[PoolSpec] = Field(default_factory=list, alias="agentPools")

    @field_validator("load_balancer_sku", mode="before")
    @classmethod
    def normalize_load_balancer_sku(cls, v: Any) -> Any:
        return _match_enum(LoadBalancerSku, v)

    @field_validator("network_plugin", mode="before")
    @classmethod
    def normalize_network_plugin(cls, v: Any) -> Any:
        return _match_enum(NetworkPlugin, v)

    @field_validator("pod_cidr", "service_cidr")
    @classmethod
    def empty_cidr_is_unset(cls, v: str | None) -> str | None:
        # An empty CIDR means "not configured"
        return v or None
