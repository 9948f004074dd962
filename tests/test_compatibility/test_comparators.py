"""Unit tests for accelerator comparators (containercraft.compatibility.comparators).

Tests cover:
- parse_version shapes and failures
- MajorMinorComparator (CUDA) matching and mismatch messages
- SemanticVersionComparator (Neuron SDK / ROCm), patch never compared
- CpuComparator always compatible
- ValidationResult message rules
- ComparatorRegistry defaults and runtime registration
"""

from __future__ import annotations

from typing import Optional, Sequence

import pytest
from pydantic import ValidationError

from containercraft.compatibility import (
    AcceleratorComparator,
    ComparatorRegistry,
    CpuComparator,
    MajorMinorComparator,
    SemanticVersionComparator,
    ValidationResult,
    parse_version,
)

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# parse_version
# ---------------------------------------------------------------------------


class TestParseVersion:
    def test_two_parts(self):
        assert parse_version("12.1") == (12, 1)

    def test_three_parts(self):
        assert parse_version("2.15.0", min_parts=3) == (2, 15, 0)

    def test_too_few_parts(self):
        assert parse_version("12") is None
        assert parse_version("2.15", min_parts=3) is None

    def test_non_numeric(self):
        assert parse_version("12.x") is None
        assert parse_version("latest") is None

    def test_empty_and_none(self):
        assert parse_version("") is None
        assert parse_version(None) is None


# ---------------------------------------------------------------------------
# MajorMinorComparator
# ---------------------------------------------------------------------------


class TestMajorMinorComparator:
    def test_compatible_with_higher_minor(self):
        result = MajorMinorComparator().is_compatible("12.1", ["12.0", "12.3"])
        assert result.compatible is True
        assert "12.3" in result.info
        assert result.error is None

    def test_exact_match(self):
        result = MajorMinorComparator().is_compatible("11.8", ["11.8"])
        assert result.compatible is True
        assert result.info == "Using CUDA 11.8 (compatible with required 11.8)"

    def test_first_matching_version_is_reported(self):
        result = MajorMinorComparator().is_compatible("12.1", ["12.1", "12.2"])
        assert "CUDA 12.1 " in result.info

    def test_incompatible_older_major(self):
        result = MajorMinorComparator().is_compatible("12.1", ["11.8"])
        assert result.compatible is False
        assert "12.1" in result.error
        assert "11.8" in result.error

    def test_newer_major_does_not_match(self):
        result = MajorMinorComparator().is_compatible("11.8", ["12.1"])
        assert result.compatible is False

    def test_lower_minor_does_not_match(self):
        result = MajorMinorComparator().is_compatible("12.2", ["12.0", "12.1"])
        assert result.compatible is False

    def test_unparsable_available_versions_never_match(self):
        result = MajorMinorComparator().is_compatible("12.1", ["twelve", "12", "12.x"])
        assert result.compatible is False

    def test_unparsable_required_version_does_not_raise(self):
        result = MajorMinorComparator().is_compatible("cuda-12", ["12.1"])
        assert result.compatible is False
        assert result.error

    def test_no_available_versions(self):
        result = MajorMinorComparator().is_compatible("12.1", [])
        assert result.compatible is False
        assert "no versions" in result.error


# ---------------------------------------------------------------------------
# SemanticVersionComparator
# ---------------------------------------------------------------------------


class TestSemanticVersionComparator:
    def test_compatible_newer_minor(self):
        result = SemanticVersionComparator("Neuron SDK").is_compatible("2.15.0", ["2.16.2"])
        assert result.compatible is True
        assert "Neuron SDK 2.16.2" in result.info

    def test_incompatible_major(self):
        result = SemanticVersionComparator("Neuron SDK").is_compatible("2.15.0", ["3.0.0"])
        assert result.compatible is False

    def test_patch_is_ignored(self):
        result = SemanticVersionComparator("ROCm").is_compatible("5.7.9", ["5.7.0"])
        assert result.compatible is True

    def test_two_part_versions_never_match(self):
        result = SemanticVersionComparator("ROCm").is_compatible("5.7.0", ["5.7"])
        assert result.compatible is False

    def test_hint_is_appended(self):
        comparator = SemanticVersionComparator("Neuron SDK", hint="Try ml.inf2.")
        result = comparator.is_compatible("2.15.0", ["1.19.0"])
        assert result.error.endswith("Try ml.inf2.")


# ---------------------------------------------------------------------------
# CpuComparator
# ---------------------------------------------------------------------------


class TestCpuComparator:
    @pytest.mark.parametrize("required,available", [
        (None, []),
        ("1.0", ["garbage"]),
        ("not-a-version", None),
    ])
    def test_always_compatible(self, required, available):
        result = CpuComparator().is_compatible(required, available)
        assert result.compatible is True
        assert result.info == "CPU-based inference (no accelerator version requirements)"


# ---------------------------------------------------------------------------
# ValidationResult
# ---------------------------------------------------------------------------


class TestValidationResult:
    def test_incompatible_requires_error(self):
        with pytest.raises(ValidationError):
            ValidationResult(compatible=False)

    def test_only_one_message(self):
        with pytest.raises(ValidationError):
            ValidationResult(compatible=True, info="a", warning="b")

    def test_constructors(self):
        assert ValidationResult.ok("fine").info == "fine"
        assert ValidationResult.failed("bad").compatible is False
        unchecked = ValidationResult.unchecked("unknown")
        assert unchecked.compatible is True
        assert unchecked.warning == "unknown"


# ---------------------------------------------------------------------------
# ComparatorRegistry
# ---------------------------------------------------------------------------


class _AlwaysNo(AcceleratorComparator):
    label = "TPU"

    def is_compatible(self, required: Optional[str], available: Sequence[str]) -> ValidationResult:
        return ValidationResult.failed("never")


class TestComparatorRegistry:
    def test_default_families(self):
        registry = ComparatorRegistry()
        assert registry.families() == ["cuda", "neuron", "rocm", "cpu"]
        assert len(registry) == 4

    def test_lookup_is_case_insensitive(self):
        registry = ComparatorRegistry()
        assert isinstance(registry.get("CUDA"), MajorMinorComparator)
        assert "Neuron" in registry

    def test_empty_registry(self):
        registry = ComparatorRegistry(include_defaults=False)
        assert len(registry) == 0
        assert registry.get("cuda") is None

    def test_register_new_family(self):
        registry = ComparatorRegistry()
        registry.register_comparator("tpu", _AlwaysNo())
        assert "tpu" in registry
        assert registry.get("tpu").label == "TPU"

    def test_register_replaces_existing(self):
        registry = ComparatorRegistry()
        replacement = _AlwaysNo()
        registry.register_comparator("cuda", replacement)
        assert registry.get("cuda") is replacement
        assert len(registry) == 4

    def test_rejects_non_comparator(self):
        with pytest.raises(TypeError):
            ComparatorRegistry().register_comparator("cuda", object())
