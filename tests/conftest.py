"""Shared pytest fixtures for the ContainerCraft test suite.

Provides reusable fixtures for:
- The default parameter matrix and raw source snapshots
- A resolver/finalizer pair with a fixed clock and seeded randomness
- Final configurations for the template stage
- Temporary working directories with config documents
"""

from __future__ import annotations

import json
import random
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import pytest

from containercraft.config import Settings
from containercraft.resolution import (
    ConfigFinalizer,
    ConfigResolver,
    FinalConfiguration,
    ParameterMatrix,
    RawSourceValues,
    Source,
    build_default_matrix,
)

FIXED_NOW = datetime(2026, 10, 19, 12, 30, 45, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Matrix & sources
# ---------------------------------------------------------------------------

@pytest.fixture
def matrix() -> ParameterMatrix:
    return build_default_matrix()


@pytest.fixture
def make_raw() -> Callable[..., RawSourceValues]:
    """Build a ``RawSourceValues`` from keyword args named after sources.

    Example: ``make_raw(cli_option={"framework": "sklearn"}, env_var={...})``
    """

    def _make(**per_source: dict[str, Any]) -> RawSourceValues:
        raw = RawSourceValues()
        for source_name, values in per_source.items():
            raw.add(Source(source_name), values)
        return raw

    return _make


@pytest.fixture
def resolver(matrix: ParameterMatrix) -> ConfigResolver:
    return ConfigResolver(matrix, env={})


@pytest.fixture
def finalizer(matrix: ParameterMatrix) -> ConfigFinalizer:
    return ConfigFinalizer(matrix, clock=lambda: FIXED_NOW, rng=random.Random(7))


@pytest.fixture
def sklearn_cli() -> dict[str, Any]:
    """CLI values describing a complete sklearn/flask project."""
    return {
        "framework": "sklearn",
        "model_server": "flask",
        "model_format": "pkl",
        "instance_type": "ml.m5.xlarge",
        "project_name": "abalone-api",
        "include_sample_model": True,
        "include_testing": True,
    }


# ---------------------------------------------------------------------------
# Final configurations
# ---------------------------------------------------------------------------

@pytest.fixture
def make_final_config(matrix: ParameterMatrix) -> Callable[..., FinalConfiguration]:
    """Build a ``FinalConfiguration`` with every matrix parameter present."""

    def _make(**overrides: Any) -> FinalConfiguration:
        values: dict[str, Any] = {spec.name: spec.default for spec in matrix}
        values.update({
            "framework": "sklearn",
            "model_server": "flask",
            "model_format": "pkl",
            "instance_type": "ml.m5.xlarge",
            "project_name": "abalone-api",
            "destination_dir": "abalone-api",
        })
        values.update(overrides)
        return FinalConfiguration(
            values=values,
            provenance={name: "cli_option" for name in values},
            build_timestamp=FIXED_NOW.strftime("%Y-%m-%dT%H-%M-%S"),
        )

    return _make


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    """Empty working directory for a run (auto-cleanup)."""
    directory = tmp_path / "work"
    directory.mkdir()
    yield directory


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def write_json() -> Callable[[Path, dict[str, Any]], Path]:
    def _write(path: Path, data: dict[str, Any]) -> Path:
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def pyproject_with_section(workdir: Path) -> Path:
    """``pyproject.toml`` carrying a ``[tool.containercraft]`` table."""
    path = workdir / "pyproject.toml"
    path.write_text(
        textwrap.dedent(
            """\
            [project]
            name = "demo"

            [tool.containercraft]
            aws-region = "eu-west-1"
            project_name = "from-pyproject"
            framework = "xgboost"
            """
        ),
        encoding="utf-8",
    )
    return path
