"""Loading ClusterSpec documents from YAML.

This is the deserialization boundary: YAML goes in, a validated ClusterSpec
comes out, and every model violation is reported here before a reconciler
sees the spec. Documents may be a bare mapping or a Kubernetes-style
envelope whose ``spec`` section holds the cluster fields.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .config import MAX_SPEC_FILE_SIZE_BYTES
from .models import ClusterSpec

logger = logging.getLogger(__name__)


class SpecLoadError(Exception):
    """Raised when a spec document cannot be read or does not validate."""


def _describe(error: ValidationError, source: str) -> str:
    lines = [
        f"  - {'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    ]
    return f"Validation failed for {source}:\n" + "\n".join(lines)


def _unwrap(document: Any, source: str) -> dict[str, Any]:
    if not isinstance(document, dict):
        raise SpecLoadError(f"Spec must be a YAML mapping: {source}")

    if "apiVersion" not in document or "spec" not in document:
        return document

    body = document["spec"] or {}
    if not isinstance(body, dict):
        raise SpecLoadError(f"Spec section must be a mapping: {source}")
    return body


def parse_spec(raw_data: Any, source: str = "<memory>") -> ClusterSpec:
    """Validate already-parsed YAML data into a ClusterSpec.

    Raises:
        SpecLoadError: If the data is not a mapping or fails validation.
    """
    body = _unwrap(raw_data, source)
    try:
        return ClusterSpec.model_validate(body)
    except ValidationError as e:
        raise SpecLoadError(_describe(e, source)) from e


def _read(spec_path: Path) -> str:
    if not spec_path.is_file():
        raise SpecLoadError(f"Spec file not found: {spec_path}")

    try:
        if spec_path.stat().st_size > MAX_SPEC_FILE_SIZE_BYTES:
            raise SpecLoadError(
                f"Spec file {spec_path} exceeds maximum size of "
                f"{MAX_SPEC_FILE_SIZE_BYTES} bytes"
            )
        return spec_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SpecLoadError(f"Cannot read spec file {spec_path}: {e}") from e


def load_spec(spec_path: Path) -> ClusterSpec:
    """Load and validate a managed cluster spec from a YAML file.

    The size limit is checked before the file is read.

    Raises:
        SpecLoadError: If the file cannot be read, parsed or validated.
    """
    try:
        document = yaml.safe_load(_read(spec_path))
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML in {spec_path}: {e}") from e

    spec = parse_spec(document, str(spec_path))
    logger.info(
        "Loaded managed cluster spec",
        extra={"cluster": spec.name, "resource_group": spec.resource_group, "path": str(spec_path)},
    )
    return spec
