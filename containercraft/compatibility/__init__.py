"""Accelerator compatibility validation.

Quick usage::

    from containercraft.compatibility import (
        AcceleratorCapability,
        AcceleratorRequirement,
        CompatibilityValidator,
    )

    validator = CompatibilityValidator()
    result = validator.check_compatibility(
        AcceleratorRequirement(family="cuda", version="12.1"),
        AcceleratorCapability(family="cuda", available_versions=["11.8", "12.2"]),
    )
"""

from containercraft.compatibility.comparators import (
    AcceleratorComparator,
    CpuComparator,
    MajorMinorComparator,
    SemanticVersionComparator,
    parse_version,
)
from containercraft.compatibility.models import (
    AcceleratorCapability,
    AcceleratorRequirement,
    InstanceRecommendation,
    ValidationResult,
)
from containercraft.compatibility.registry import ComparatorRegistry
from containercraft.compatibility.validator import CompatibilityValidator

__all__ = [
    "AcceleratorCapability",
    "AcceleratorComparator",
    "AcceleratorRequirement",
    "ComparatorRegistry",
    "CompatibilityValidator",
    "CpuComparator",
    "InstanceRecommendation",
    "MajorMinorComparator",
    "SemanticVersionComparator",
    "ValidationResult",
    "parse_version",
]
