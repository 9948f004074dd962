"""Collect raw values from every input source.

Nothing here applies the parameter matrix whitelist or precedence; that is the
resolver's job.  The loaders only translate each source's native shape
(argparse options, environment variables, JSON/YAML documents, the
``[tool.containercraft]`` table of ``pyproject.toml``) into flat
``{parameter: value}`` maps.
"""

from __future__ import annotations

import asyncio
import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from containercraft.config import Settings
from containercraft.utils import load_document

from .matrix import ParameterMatrix
from .models import ConfigurationError, Source

logger = logging.getLogger(__name__)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


#: Returned by :meth:`RawSourceValues.lookup` when a source supplied nothing.
MISSING: Any = _Missing()


@dataclass
class RawSourceValues:
    """Per-source ``{parameter: value}`` maps for a single resolution run.

    ``None`` values are treated as "not supplied".
    """

    values: dict[Source, dict[str, Any]] = field(default_factory=dict)
    #: Where each document-backed source was read from, for reporting.
    locations: dict[Source, Path] = field(default_factory=dict)

    def add(self, source: Source, mapping: Mapping[str, Any]) -> None:
        bucket = self.values.setdefault(source, {})
        for name, value in mapping.items():
            if value is not None:
                bucket[name] = value

    def lookup(self, source: Source, name: str) -> Any:
        return self.values.get(source, {}).get(name, MISSING)

    def for_source(self, source: Source) -> dict[str, Any]:
        return dict(self.values.get(source, {}))


# ---------------------------------------------------------------------------
# Individual sources
# ---------------------------------------------------------------------------

def cli_option_values(options: Mapping[str, Any], matrix: ParameterMatrix) -> dict[str, Any]:
    """Map parsed CLI options to parameter names.

    Keys may use either the flag spelling (``model-server``) or the argparse
    destination (``model_server``).  Options without a matrix entry are
    dropped.
    """
    by_flag = matrix.cli_options()
    values: dict[str, Any] = {}
    for key, value in options.items():
        if value is None:
            continue
        parameter = by_flag.get(key.replace("_", "-"))
        if parameter is not None:
            values[parameter] = value
    return values


def cli_argument_values(positional: Sequence[str]) -> dict[str, Any]:
    """The first positional argument names the project."""
    if positional and positional[0]:
        return {"project_name": positional[0]}
    return {}


def env_values(env: Mapping[str, str], matrix: ParameterMatrix) -> dict[str, Any]:
    """Read only the environment variables the matrix maps; empty values are skipped."""
    values: dict[str, Any] = {}
    for env_name, parameter in matrix.env_var_names().items():
        raw = env.get(env_name)
        if raw is not None and raw != "":
            values[parameter] = raw
    return values


def document_values(data: Mapping[str, Any]) -> dict[str, Any]:
    """Normalise document keys (``deploy-target`` -> ``deploy_target``)."""
    return {str(key).replace("-", "_"): value for key, value in data.items()}


def read_config_document(path: Path) -> dict[str, Any]:
    """Read an explicitly referenced config document.

    Raises:
        ConfigurationError: If the file is missing, unreadable, or not a
            mapping.
    """
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}", "config_file", Source.CONFIG_FILE)
    try:
        data = load_document(path)
    except (OSError, ValueError) as exc:
        raise ConfigurationError(
            f"Failed to load config file {path}: {exc}", "config_file", Source.CONFIG_FILE
        ) from exc
    return document_values(data)


def read_local_document(cwd: Path, names: Sequence[str]) -> tuple[Optional[Path], dict[str, Any]]:
    """Read the first conventional config document found in *cwd*.

    Parse errors are logged and the document is skipped; it is optional.
    """
    for name in names:
        path = cwd / name
        if not path.is_file():
            continue
        try:
            return path, document_values(load_document(path))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable config document %s: %s", path, exc)
            return None, {}
    return None, {}


def read_project_section(cwd: Path, descriptor: str, section: str) -> tuple[Optional[Path], dict[str, Any]]:
    """Read ``[tool.<section>]`` from the project descriptor in *cwd*."""
    path = cwd / descriptor
    if not path.is_file():
        return None, {}
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring unreadable project descriptor %s: %s", path, exc)
        return None, {}
    table = data.get("tool", {}).get(section)
    if not isinstance(table, dict):
        return None, {}
    return path, document_values(table)


def locate_config_document(
    cli_values: Mapping[str, Any],
    environment: Mapping[str, Any],
    cwd: Path,
) -> Optional[Path]:
    """Path of the explicit config document: ``--config`` first, then its env var."""
    raw = cli_values.get("config_file") or environment.get("config_file")
    if not raw:
        return None
    path = Path(str(raw)).expanduser()
    return path if path.is_absolute() else cwd / path


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

async def load_sources(
    *,
    options: Mapping[str, Any],
    positional: Sequence[str],
    env: Mapping[str, str],
    cwd: Path,
    matrix: ParameterMatrix,
    settings: Optional[Settings] = None,
) -> RawSourceValues:
    """Gather every source into a fresh ``RawSourceValues``.

    Documents are read one after another in a worker thread; the explicit
    config document is read first, then the conventional one, then the
    project descriptor.

    Raises:
        ConfigurationError: If an explicitly referenced config document
            cannot be read.
    """
    settings = settings or Settings()
    raw = RawSourceValues()

    cli_values = cli_option_values(options, matrix)
    environment = env_values(env, matrix)
    raw.add(Source.CLI_OPTION, cli_values)
    raw.add(Source.CLI_ARGUMENT, cli_argument_values(positional))
    raw.add(Source.ENV_VAR, environment)

    config_path = locate_config_document(cli_values, environment, cwd)
    if config_path is not None:
        raw.add(Source.CONFIG_FILE, await asyncio.to_thread(read_config_document, config_path))
        raw.locations[Source.CONFIG_FILE] = config_path

    local_path, local_values = await asyncio.to_thread(
        read_local_document, cwd, settings.local_config_names
    )
    if local_path is not None:
        raw.add(Source.LOCAL_CONFIG_FILE, local_values)
        raw.locations[Source.LOCAL_CONFIG_FILE] = local_path

    section_path, section_values = await asyncio.to_thread(
        read_project_section, cwd, settings.descriptor_name, settings.section_name
    )
    if section_path is not None:
        raw.add(Source.PROJECT_SECTION, section_values)
        raw.locations[Source.PROJECT_SECTION] = section_path

    return raw
