"""AKS managed cluster operator CLI (aks-operator).

Usage:
    aks-operator reconcile cluster.yaml     # Create or update the cluster
    aks-operator get cluster.yaml           # Print current Azure state as JSON
    aks-operator delete cluster.yaml        # Delete the cluster (absent is fine)
    aks-operator credentials RG NAME        # Write the admin kubeconfig

Configuration comes from the environment, see Config.from_env().
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import click

from .config import Config, ConfigurationError
from .errors import ManagedClusterError
from .main import create_reconciler, setup_logging
from .models import ClusterSpec
from .reconciler import ManagedClusterReconciler
from .security import SecretlessViolationError
from .spec_loader import SpecLoadError, load_spec

T = TypeVar("T")

SPEC_PATH = click.Path(exists=True, dir_okay=False, path_type=Path)


class SecurityViolation(click.ClickException):
    """Credentials found in the environment."""

    exit_code = 2


def _reconciler() -> ManagedClusterReconciler:
    try:
        config = Config.from_env()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    try:
        return create_reconciler(config)
    except SecretlessViolationError as e:
        raise SecurityViolation(str(e)) from e


def _run(coro: Coroutine[Any, Any, T]) -> T:
    try:
        return asyncio.run(coro)
    except ManagedClusterError as e:
        raise click.ClickException(str(e)) from e
    except TimeoutError as e:
        raise click.ClickException("Azure operation timed out") from e


def _load(spec_path: Path) -> ClusterSpec:
    try:
        return load_spec(spec_path)
    except SpecLoadError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version="0.1.0", prog_name="aks-operator")
@click.option("--timeout", type=click.IntRange(min=1), help="Per-call timeout in seconds")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, timeout: int | None, verbose: bool) -> None:
    """AKS managed cluster operator."""
    setup_logging(logging.DEBUG if verbose else logging.INFO)
    ctx.ensure_object(dict)
    ctx.obj["timeout"] = timeout


@cli.command()
@click.argument("spec_path", type=SPEC_PATH)
@click.pass_context
def reconcile(ctx: click.Context, spec_path: Path) -> None:
    """Create or update the cluster described by SPEC_PATH."""
    spec = _load(spec_path)
    reconciler = _reconciler()
    cluster = _run(reconciler.reconcile(spec, timeout=ctx.obj["timeout"]))
    state = getattr(cluster, "provisioning_state", None) or "unknown"
    click.echo(f"Reconciled managed cluster {spec.name} ({state})")


@cli.command()
@click.argument("spec_path", type=SPEC_PATH)
@click.pass_context
def get(ctx: click.Context, spec_path: Path) -> None:
    """Print the Azure state of the cluster described by SPEC_PATH."""
    spec = _load(spec_path)
    reconciler = _reconciler()
    cluster = _run(reconciler.get(spec, timeout=ctx.obj["timeout"]))
    click.echo(json.dumps(cluster.as_dict(), indent=2, default=str))


@cli.command()
@click.argument("spec_path", type=SPEC_PATH)
@click.pass_context
def delete(ctx: click.Context, spec_path: Path) -> None:
    """Delete the cluster described by SPEC_PATH."""
    spec = _load(spec_path)
    reconciler = _reconciler()
    _run(reconciler.delete(spec, timeout=ctx.obj["timeout"]))
    click.echo(f"Deleted managed cluster {spec.name}")


@cli.command()
@click.argument("resource_group")
@click.argument("name")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Write kubeconfig to this file instead of stdout",
)
@click.pass_context
def credentials(ctx: click.Context, resource_group: str, name: str, output: Path | None) -> None:
    """Fetch the admin kubeconfig of cluster NAME in RESOURCE_GROUP."""
    reconciler = _reconciler()
    kubeconfig = _run(
        reconciler.get_credentials(resource_group, name, timeout=ctx.obj["timeout"])
    )

    if output is None:
        click.echo(kubeconfig, nl=False)
        return

    output.write_bytes(kubeconfig)
    # Kubeconfigs carry cluster admin credentials
    output.chmod(0o600)
    click.echo(f"Wrote kubeconfig to {output}", err=True)


def run() -> None:
    """Entry point for the operator CLI."""
    cli(obj={})


if __name__ == "__main__":
    run()
