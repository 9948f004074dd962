"""Unit tests for the shipped registries (containercraft.registries).

Tests cover:
- Loading the packaged YAML registries
- Missing files (empty + warning) vs. broken files (RegistryError)
- Framework version selection
- Requirement / capability conversion
- Profiles and the layered runtime environment
- End-to-end recommendation against the shipped instance mapping
"""

from __future__ import annotations

import logging

import pytest

from containercraft.compatibility import CompatibilityValidator
from containercraft.envvars import EnvVarValidator
from containercraft.registries import (
    RegistryError,
    capability_for,
    capability_map,
    framework_spec_for,
    load_framework_registry,
    load_instance_mapping,
    profile_env_vars,
    profile_names,
    requirement_for,
    runtime_env_for,
    select_framework_version,
)


@pytest.fixture
def frameworks():
    return load_framework_registry()


@pytest.fixture
def instances():
    return load_instance_mapping()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestLoading:
    def test_packaged_framework_registry(self, frameworks):
        assert set(frameworks) == {"vllm", "sglang", "flask", "fastapi"}
        assert frameworks["vllm"]["0.4.0"]["accelerator"]["version"] == "12.1"

    def test_packaged_instance_mapping(self, instances):
        assert instances["ml.g5.xlarge"]["accelerator"]["type"] == "cuda"
        assert instances["ml.inf2.xlarge"]["accelerator"]["type"] == "neuron"
        assert instances["ml.m5.xlarge"]["accelerator"]["type"] == "cpu"

    def test_missing_file_gives_empty_registry(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="containercraft.registries"):
            assert load_framework_registry(tmp_path / "nope.yaml") == {}
            assert load_instance_mapping(tmp_path / "nope.yaml") == {}
        assert "not found" in caplog.text

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "frameworks.yaml"
        path.write_text("vllm: [unclosed\n", encoding="utf-8")
        with pytest.raises(RegistryError, match="Invalid YAML"):
            load_framework_registry(path)

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "instances.yaml"
        path.write_text("- ml.g5.xlarge\n", encoding="utf-8")
        with pytest.raises(RegistryError, match="must contain a mapping"):
            load_instance_mapping(path)

    def test_framework_versions_must_be_a_mapping(self, tmp_path):
        path = tmp_path / "frameworks.yaml"
        path.write_text("vllm: 0.4.0\n", encoding="utf-8")
        with pytest.raises(RegistryError):
            load_framework_registry(path)

    def test_empty_file_is_empty_registry(self, tmp_path):
        path = tmp_path / "frameworks.yaml"
        path.write_text("", encoding="utf-8")
        assert load_framework_registry(path) == {}


# ---------------------------------------------------------------------------
# Version selection & conversion
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestSelection:
    def test_exact_version(self, frameworks):
        version, entry = select_framework_version(frameworks, "vllm", "0.3.0")
        assert version == "0.3.0"
        assert entry["base_image"].endswith("v0.3.0")

    def test_latest_when_unspecified(self, frameworks):
        version, _ = select_framework_version(frameworks, "vllm")
        assert version == "0.4.0"

    def test_latest_when_unknown_version(self, frameworks):
        version, _ = select_framework_version(frameworks, "vllm", "9.9.9")
        assert version == "0.4.0"

    def test_numeric_ordering(self):
        registry = {"srv": {"0.9.0": {}, "0.10.0": {}}}
        assert select_framework_version(registry, "srv")[0] == "0.10.0"

    def test_unknown_server(self, frameworks):
        assert select_framework_version(frameworks, "triton") is None

    def test_requirement_for_gpu_server(self, frameworks):
        _, entry = select_framework_version(frameworks, "sglang", "0.2.0")
        requirement = requirement_for(entry, "sglang")
        assert requirement.family == "cuda"
        assert requirement.version == "12.1"

    def test_requirement_for_cpu_server(self):
        assert requirement_for({}, "flask").family == "cpu"
        assert requirement_for({"accelerator": {"type": "cuda", "version": "12.1"}}, "fastapi").family == "cpu"

    def test_capability_for(self, instances):
        capability = capability_for(instances["ml.inf2.xlarge"])
        assert capability.family == "neuron"
        assert "2.16.0" in capability.available_versions

    def test_capability_for_cpu_instance(self, instances):
        capability = capability_for(instances["ml.m5.xlarge"])
        assert capability.family == "cpu"
        assert capability.available_versions == []
        assert capability.default_version is None

    def test_framework_spec_for(self, frameworks):
        spec = framework_spec_for("vllm", "0.4.0", frameworks["vllm"]["0.4.0"])
        assert spec.name == "vllm"
        assert "VLLM_MAX_NUM_SEQS" in spec.known_flags
        assert "VLLM_ATTENTION_BACKEND" in spec.community_reports


# ---------------------------------------------------------------------------
# Shipped data working together
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestShippedData:
    def test_vllm_on_g5_is_compatible(self, frameworks, instances):
        _, entry = select_framework_version(frameworks, "vllm")
        result = CompatibilityValidator().check_compatibility(
            requirement_for(entry, "vllm"), capability_for(instances["ml.g5.xlarge"])
        )
        assert result.compatible is True

    def test_vllm_on_g4dn_is_incompatible(self, frameworks, instances):
        _, entry = select_framework_version(frameworks, "vllm")
        result = CompatibilityValidator().check_compatibility(
            requirement_for(entry, "vllm"), capability_for(instances["ml.g4dn.xlarge"])
        )
        assert result.compatible is False

    def test_vllm_on_inferentia_is_a_family_mismatch(self, frameworks, instances):
        _, entry = select_framework_version(frameworks, "vllm")
        result = CompatibilityValidator().check_compatibility(
            requirement_for(entry, "vllm"), capability_for(instances["ml.inf2.xlarge"])
        )
        assert "neuron" in result.error

    def test_recommendations_for_cuda_12_1(self, frameworks, instances):
        _, entry = select_framework_version(frameworks, "vllm")
        recs = CompatibilityValidator().get_recommended_instance_types(
            requirement_for(entry, "vllm"), capability_map(instances)
        )
        assert [r.instance_type for r in recs] == [
            "ml.g5.xlarge", "ml.g5.2xlarge", "ml.g5.4xlarge", "ml.g5.12xlarge", "ml.g5.48xlarge",
        ]

    def test_registry_flags_drive_env_validation(self, frameworks):
        spec = framework_spec_for("vllm", "0.4.0", frameworks["vllm"]["0.4.0"])
        result = EnvVarValidator().validate({"VLLM_TENSOR_PARALLEL_SIZE": "16"}, spec)
        assert result.messages() == ["error: VLLM_TENSOR_PARALLEL_SIZE must be <= 8, got 16"]

    def test_framework_spec_keeps_declared_empty_tables(self, frameworks):
        spec = framework_spec_for("vllm", "0.3.0", frameworks["vllm"]["0.3.0"])
        assert spec.community_reports == {}
        assert framework_spec_for("srv", "1", {}).known_flags is None


# ---------------------------------------------------------------------------
# Profiles & runtime environment
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestRuntimeEnv:
    @pytest.fixture
    def vllm_entry(self, frameworks):
        return frameworks["vllm"]["0.4.0"]

    def test_profile_names(self, vllm_entry, frameworks):
        assert profile_names(vllm_entry) == ["low-latency", "multi-gpu"]
        assert profile_names(frameworks["sglang"]["0.2.0"]) == []

    def test_unknown_profile(self, vllm_entry):
        assert profile_env_vars(vllm_entry, "turbo") is None
        assert profile_env_vars(vllm_entry, "multi-gpu") == {"VLLM_TENSOR_PARALLEL_SIZE": "4"}

    def test_entry_defaults_only(self, vllm_entry):
        env = runtime_env_for(vllm_entry)
        assert env["VLLM_MAX_NUM_SEQS"] == "256"
        assert env["VLLM_ENABLE_PREFIX_CACHING"] == "true"

    def test_profile_then_overrides(self, vllm_entry):
        env = runtime_env_for(
            vllm_entry,
            "low-latency",
            {"VLLM_MAX_NUM_SEQS": "64", "VLLM_ATTENTION_BACKEND": "FLASHINFER"},
        )
        assert env["VLLM_MAX_NUM_SEQS"] == "64"
        assert env["VLLM_GPU_MEMORY_UTILIZATION"] == "0.85"
        assert env["VLLM_MAX_MODEL_LEN"] == "4096"
        assert env["VLLM_ATTENTION_BACKEND"] == "FLASHINFER"

    def test_profile_values_drive_env_validation(self, vllm_entry):
        env = runtime_env_for(vllm_entry, overrides={"VLLM_MAX_NUM_SEQS": "999999"})
        result = EnvVarValidator().validate(env, framework_spec_for("vllm", "0.4.0", vllm_entry))
        assert result.messages() == ["error: VLLM_MAX_NUM_SEQS must be <= 1024, got 999999"]
