"""Static registries of serving frameworks and instance accelerators.

Both registries are YAML files shipped with the package.  They are parsed
once into plain dicts and converted to the compatibility models on demand.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from containercraft.compatibility.comparators import parse_version
from containercraft.compatibility.models import AcceleratorCapability, AcceleratorRequirement
from containercraft.envvars.models import FrameworkSpec

logger = logging.getLogger(__name__)

REGISTRY_DIR = Path(__file__).resolve().parent

#: Serving stacks that never need an accelerator.
CPU_SERVERS = frozenset({"flask", "fastapi"})


class RegistryError(Exception):
    """A registry file exists but cannot be used."""


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise RegistryError(f"Invalid YAML in registry {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RegistryError(f"Registry {path} must contain a mapping, got {type(data).__name__}")
    return data


def load_framework_registry(path: Optional[Path] = None) -> dict[str, dict[str, dict[str, Any]]]:
    """Load ``server -> version -> entry`` from *path*.

    A missing file yields an empty registry and a warning.

    Raises:
        RegistryError: If the file is not valid YAML or not a mapping.
    """
    path = path or REGISTRY_DIR / "frameworks.yaml"
    if not path.exists():
        logger.warning("Framework registry not found at %s; continuing without it", path)
        return {}
    registry = _load_yaml_mapping(path)
    for server, versions in registry.items():
        if not isinstance(versions, dict):
            raise RegistryError(f"Framework {server!r} in {path} must map versions to entries")
    return registry


def load_instance_mapping(path: Optional[Path] = None) -> dict[str, dict[str, Any]]:
    """Load ``instance type -> entry`` from *path*.

    A missing file yields an empty mapping and a warning.

    Raises:
        RegistryError: If the file is not valid YAML or not a mapping.
    """
    path = path or REGISTRY_DIR / "instances.yaml"
    if not path.exists():
        logger.warning("Instance mapping not found at %s; continuing without it", path)
        return {}
    return _load_yaml_mapping(path)


def select_framework_version(
    registry: Mapping[str, Mapping[str, Any]],
    server: str,
    version: Optional[str] = None,
) -> Optional[tuple[str, dict[str, Any]]]:
    """Pick a ``(version, entry)`` pair for *server*.

    The exact *version* wins when registered; otherwise the highest version
    by numeric ordering.  Returns ``None`` for an unknown server.
    """
    versions = registry.get(server)
    if not versions:
        return None
    if version is not None and str(version) in versions:
        return str(version), dict(versions[str(version)])
    if version is not None:
        logger.debug("%s %s is not registered; using the latest version", server, version)
    latest = max(versions, key=lambda v: parse_version(str(v), min_parts=1) or ())
    return str(latest), dict(versions[latest])


def requirement_for(entry: Mapping[str, Any], server: Optional[str] = None) -> AcceleratorRequirement:
    """The accelerator a framework entry needs."""
    if server in CPU_SERVERS:
        return AcceleratorRequirement(family="cpu")
    accelerator = entry.get("accelerator") or {}
    version = accelerator.get("version")
    return AcceleratorRequirement(
        family=str(accelerator.get("type") or "cpu"),
        version=None if version is None else str(version),
    )


def capability_for(entry: Mapping[str, Any]) -> AcceleratorCapability:
    """The accelerator an instance entry provides."""
    accelerator = entry.get("accelerator") or {}
    default = accelerator.get("default")
    return AcceleratorCapability(
        family=str(accelerator.get("type") or "cpu"),
        available_versions=[str(v) for v in accelerator.get("versions") or []],
        default_version=None if default is None else str(default),
    )


def capability_map(mapping: Mapping[str, Mapping[str, Any]]) -> dict[str, AcceleratorCapability]:
    """Convert a whole instance mapping, keeping its order."""
    return {instance_type: capability_for(entry) for instance_type, entry in mapping.items()}


def framework_spec_for(server: str, version: str, entry: Mapping[str, Any]) -> FrameworkSpec:
    """Known flags and community reports of an entry, for env var validation.

    A table the entry leaves out stays ``None`` so its strategy is skipped;
    an empty table still counts as declared.
    """
    return FrameworkSpec.model_validate({
        "name": server,
        "version": version,
        "known_flags": entry.get("known_flags"),
        "community_reports": entry.get("community_reports"),
    })


def profile_names(entry: Mapping[str, Any]) -> list[str]:
    return list(entry.get("profiles") or {})


def profile_env_vars(entry: Mapping[str, Any], profile: str) -> Optional[dict[str, str]]:
    """Variables of a named profile; ``None`` when the entry has no such profile."""
    profiles = entry.get("profiles") or {}
    if profile not in profiles:
        return None
    return {str(k): str(v) for k, v in ((profiles[profile] or {}).get("env_vars") or {}).items()}


def runtime_env_for(
    entry: Mapping[str, Any],
    profile: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> dict[str, str]:
    """The variables a container runs with.

    Layered lowest first: the entry's ``env_vars``, the named profile's
    ``env_vars`` (an unknown profile adds nothing), then *overrides*.
    """
    env = {str(k): str(v) for k, v in (entry.get("env_vars") or {}).items()}
    if profile:
        env.update(profile_env_vars(entry, profile) or {})
    env.update({str(k): str(v) for k, v in (overrides or {}).items()})
    return env


__all__ = [
    "CPU_SERVERS",
    "REGISTRY_DIR",
    "RegistryError",
    "capability_for",
    "capability_map",
    "framework_spec_for",
    "load_framework_registry",
    "load_instance_mapping",
    "profile_env_vars",
    "profile_names",
    "requirement_for",
    "runtime_env_for",
    "select_framework_version",
]
