"""Derivation of a provider-ready ManagedCluster from a ClusterSpec.

Everything here is pure: the spec is read, never written, and a fresh
ManagedCluster model is built on every call. Validation failures raise
SpecValidationError and no partial resource is returned.

Derivation order:
1. System-assigned managed identity
2. Linux admin profile with the spec's SSH key
3. Service principal profile pointing at the managed identity
4. Network profile defaults (plugin, load balancer SKU) and overrides
5. Pod CIDR
6. Service CIDR and the derived cluster DNS service IP
7. Network policy
8. Agent pool profiles, in input order
"""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass

from azure.mgmt.containerservice.models import (
    AgentPoolType,
    ContainerServiceLinuxProfile,
    ContainerServiceNetworkProfile,
    ContainerServiceSshConfiguration,
    ContainerServiceSshPublicKey,
    ManagedCluster,
    ManagedClusterAgentPoolProfile,
    ManagedClusterIdentity,
    ManagedClusterServicePrincipalProfile,
    NetworkPolicy,
    ResourceIdentityType,
)
from azure.mgmt.containerservice.models import LoadBalancerSku as AksLoadBalancerSku
from azure.mgmt.containerservice.models import NetworkPlugin as AksNetworkPlugin

from .errors import SpecValidationError
from .models import ClusterSpec, LoadBalancerSku, NetworkPlugin, PoolSpec

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_USERNAME = "azureuser"

# Client ID that tells AKS to use the cluster's managed identity instead of
# a service principal secret
MANAGED_IDENTITY_CLIENT_ID = "msi"

# The cluster DNS service takes the .10 address of the service CIDR
DNS_SERVICE_IP_HOST_OCTET = 10

# Usable host addresses a service CIDR must offer, excluding the network and
# broadcast addresses
MIN_SERVICE_CIDR_HOSTS = 16

ALLOWED_NETWORK_POLICIES: dict[str, NetworkPolicy] = {
    "azure": NetworkPolicy.AZURE,
    "calico": NetworkPolicy.CALICO,
}

_NETWORK_PLUGINS: dict[NetworkPlugin, AksNetworkPlugin] = {
    NetworkPlugin.AZURE: AksNetworkPlugin.AZURE,
    NetworkPlugin.KUBENET: AksNetworkPlugin.KUBENET,
}

_LOAD_BALANCER_SKUS: dict[LoadBalancerSku, AksLoadBalancerSku] = {
    LoadBalancerSku.STANDARD: AksLoadBalancerSku.STANDARD,
    LoadBalancerSku.BASIC: AksLoadBalancerSku.BASIC,
}


@dataclass(frozen=True)
class DerivationDefaults:
    """Defaults applied where the spec leaves a field unset.

    Immutable after creation; pass a different instance rather than
    changing module state.
    """

    admin_username: str = DEFAULT_ADMIN_USERNAME
    service_principal_client_id: str = MANAGED_IDENTITY_CLIENT_ID
    network_plugin: NetworkPlugin = NetworkPlugin.AZURE
    load_balancer_sku: LoadBalancerSku = LoadBalancerSku.STANDARD


def _usable_hosts(network: ipaddress.IPv4Network | ipaddress.IPv6Network) -> int:
    # IPv6 has no broadcast address, only the subnet-router anycast address
    reserved = 2 if network.version == 4 else 1
    return max(network.num_addresses - reserved, 0)


def derive_dns_service_ip(service_cidr: str) -> str:
    """Derive the cluster DNS service IP from a service CIDR.

    The network address of the CIDR has its low-order byte replaced with
    DNS_SERVICE_IP_HOST_OCTET, e.g. "10.96.0.0/12" -> "10.96.0.10".

    Args:
        service_cidr: Service CIDR in the form "a.b.c.d/n" (IPv4 or IPv6).

    Returns:
        The DNS service IP as a string.

    Raises:
        SpecValidationError: If the CIDR is malformed, too small, or the
            derived address falls outside of it.
    """
    try:
        network = ipaddress.ip_network(service_cidr, strict=False)
    except ValueError as e:
        raise SpecValidationError(f"failed to parse service cidr '{service_cidr}': {e}") from e

    if _usable_hosts(network) < MIN_SERVICE_CIDR_HOSTS:
        raise SpecValidationError(
            f"service cidr '{service_cidr}' is too small: at least "
            f"{MIN_SERVICE_CIDR_HOSTS} usable host addresses are required"
        )

    base = int(network.network_address)
    address_cls = type(network.network_address)
    dns_ip = address_cls((base & ~0xFF) | DNS_SERVICE_IP_HOST_OCTET)

    if dns_ip not in network:
        raise SpecValidationError(
            f"service cidr '{service_cidr}' does not contain the derived "
            f"DNS service IP {dns_ip}"
        )

    return str(dns_ip)


def validate_network_policy(network_policy: str) -> NetworkPolicy:
    """Map a network policy string to the AKS enum, ignoring case.

    Raises:
        SpecValidationError: If the value is neither 'azure' nor 'calico'.
    """
    policy = ALLOWED_NETWORK_POLICIES.get(network_policy.lower())
    if policy is None:
        raise SpecValidationError(
            f"invalid network policy: '{network_policy}'. "
            "Allowed options are 'calico' and 'azure'"
        )
    return policy


def build_network_profile(
    spec: ClusterSpec,
    defaults: DerivationDefaults,
) -> ContainerServiceNetworkProfile:
    """Build the network profile, applying defaults and overrides."""
    plugin = spec.network_plugin or defaults.network_plugin
    sku = spec.load_balancer_sku or defaults.load_balancer_sku

    # The SDK model ships its own CIDR defaults; they are cleared so that an
    # unset spec field stays unset on the wire
    profile = ContainerServiceNetworkProfile(
        network_plugin=_NETWORK_PLUGINS[plugin],
        load_balancer_sku=_LOAD_BALANCER_SKUS[sku],
        pod_cidr=spec.pod_cidr,
        service_cidr=None,
        dns_service_ip=None,
    )

    if spec.service_cidr:
        profile.service_cidr = spec.service_cidr
        profile.dns_service_ip = derive_dns_service_ip(spec.service_cidr)

    # None means unset: AKS keeps its own default, which is not the same
    # as asking for the Azure policy
    if spec.network_policy is not None:
        profile.network_policy = validate_network_policy(spec.network_policy)

    return profile


def build_agent_pool_profile(pool: PoolSpec) -> ManagedClusterAgentPoolProfile:
    return ManagedClusterAgentPoolProfile(
        name=pool.name,
        vm_size=pool.sku,
        os_disk_size_gb=pool.os_disk_size_gb,
        count=pool.replicas,
        type=AgentPoolType.VIRTUAL_MACHINE_SCALE_SETS,
    )


def build_managed_cluster(
    spec: ClusterSpec,
    defaults: DerivationDefaults | None = None,
) -> ManagedCluster:
    """Expand a ClusterSpec into a complete ManagedCluster resource.

    Args:
        spec: Desired cluster state.
        defaults: Defaults for unset fields. Uses DerivationDefaults() if None.

    Returns:
        ManagedCluster ready for create-or-update.

    Raises:
        SpecValidationError: If the service CIDR or network policy is invalid.
    """
    defaults = defaults or DerivationDefaults()

    # Network profile first: it is the only part that can fail validation
    network_profile = build_network_profile(spec, defaults)

    managed_cluster = ManagedCluster(
        location=spec.location,
        identity=ManagedClusterIdentity(type=ResourceIdentityType.SYSTEM_ASSIGNED),
        dns_prefix=spec.name,
        kubernetes_version=spec.version,
        linux_profile=ContainerServiceLinuxProfile(
            admin_username=defaults.admin_username,
            ssh=ContainerServiceSshConfiguration(
                public_keys=[ContainerServiceSshPublicKey(key_data=spec.ssh_public_key)],
            ),
        ),
        service_principal_profile=ManagedClusterServicePrincipalProfile(
            client_id=defaults.service_principal_client_id,
        ),
        network_profile=network_profile,
        agent_pool_profiles=[build_agent_pool_profile(pool) for pool in spec.agent_pools],
    )

    if spec.tags:
        managed_cluster.tags = dict(spec.tags)

    logger.debug(
        "Derived managed cluster resource",
        extra={
            "cluster": spec.name,
            "resource_group": spec.resource_group,
            "agent_pools": len(spec.agent_pools),
            "dns_service_ip": network_profile.dns_service_ip,
        },
    )
    return managed_cluster
