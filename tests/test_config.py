"""Unit tests for tool Settings (containercraft.config).

Tests cover:
- Settings defaults and derived registry paths
- The exact set of settings fields
- from_env overrides
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from containercraft.config import PACKAGE_DIR, Settings


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestSettingsDefaults:
    @pytest.mark.unit
    def test_default_documents(self):
        settings = Settings()
        assert settings.local_config_names == [
            "containercraft.config.json",
            "containercraft.config.yaml",
        ]
        assert settings.descriptor_name == "pyproject.toml"
        assert settings.section_name == "containercraft"
        assert settings.strict is False

    @pytest.mark.unit
    def test_registry_paths(self):
        settings = Settings()
        assert settings.registry_dir == PACKAGE_DIR / "registries"
        assert settings.frameworks_path.name == "frameworks.yaml"
        assert settings.instances_path.is_file()

    @pytest.mark.unit
    def test_template_dir_ships_with_package(self):
        assert (Settings().template_dir / "Dockerfile.j2").is_file()

    @pytest.mark.unit
    def test_custom_registry_dir(self, tmp_path: Path):
        settings = Settings(registry_dir=tmp_path)
        assert settings.frameworks_path == tmp_path / "frameworks.yaml"


# ---------------------------------------------------------------------------
# Fields
# ---------------------------------------------------------------------------


class TestSettingsFields:
    @pytest.mark.unit
    def test_only_settings_the_run_reads(self):
        assert set(Settings.model_fields) == {
            "local_config_names",
            "descriptor_name",
            "section_name",
            "registry_dir",
            "template_dir",
            "strict",
        }

    @pytest.mark.unit
    def test_copy_with_strict(self):
        settings = Settings().model_copy(update={"strict": True})
        assert settings.strict is True
        assert settings.section_name == "containercraft"


# ---------------------------------------------------------------------------
# from_env
# ---------------------------------------------------------------------------


class TestSettingsFromEnv:
    @pytest.mark.unit
    def test_defaults_when_no_env(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings.from_env()
        assert settings == Settings()

    @pytest.mark.unit
    def test_registry_and_template_dirs(self):
        env = {
            "CONTAINERCRAFT_REGISTRY_DIR": "/opt/registries",
            "CONTAINERCRAFT_TEMPLATE_DIR": "/opt/templates",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()
        assert settings.registry_dir == Path("/opt/registries")
        assert settings.template_dir == Path("/opt/templates")

    @pytest.mark.unit
    @pytest.mark.parametrize("raw,expected", [("1", True), ("Yes", True), ("off", False), ("0", False)])
    def test_strict(self, raw, expected):
        with patch.dict(os.environ, {"CONTAINERCRAFT_STRICT": raw}, clear=True):
            assert Settings.from_env().strict is expected
