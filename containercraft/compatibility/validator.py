"""Framework-vs-instance accelerator compatibility checks.

``CompatibilityValidator`` first makes sure the accelerator *families* agree,
then hands the version comparison to the comparator registered for that
family.  Unknown families fail open: the check passes with a warning so a new
accelerator type is never blocked just because nobody wrote a comparator yet.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from .comparators import AcceleratorComparator
from .models import (
    AcceleratorCapability,
    AcceleratorRequirement,
    InstanceRecommendation,
    ValidationResult,
)
from .registry import ComparatorRegistry

logger = logging.getLogger(__name__)


class CompatibilityValidator:
    """Checks accelerator requirements against instance capabilities."""

    def __init__(self, registry: Optional[ComparatorRegistry] = None) -> None:
        self.registry = registry if registry is not None else ComparatorRegistry()

    def register_comparator(self, family: str, comparator: AcceleratorComparator) -> None:
        """Shortcut for ``self.registry.register_comparator``."""
        self.registry.register_comparator(family, comparator)

    def check_compatibility(
        self,
        requirement: AcceleratorRequirement,
        capability: AcceleratorCapability,
    ) -> ValidationResult:
        """Return whether *capability* satisfies *requirement*.

        Args:
            requirement: Accelerator declared by the serving framework.
            capability: Accelerator declared by the instance profile.

        Returns:
            A ``ValidationResult``; never raises for a mismatch.
        """
        if requirement.family.lower() != capability.family.lower():
            return ValidationResult.failed(
                f"Framework requires {requirement.family} accelerator, but instance provides "
                f"{capability.family}. Please select an instance type with "
                f"{requirement.family} support."
            )

        comparator = self.registry.get(requirement.family)
        if comparator is None:
            logger.debug("No comparator registered for family %r", requirement.family)
            return ValidationResult.unchecked(
                f"No validator available for {requirement.family} accelerator. "
                "Proceeding without version validation."
            )

        return comparator.is_compatible(requirement.version, capability.available_versions)

    def get_recommended_instance_types(
        self,
        requirement: AcceleratorRequirement,
        capability_map: Mapping[str, AcceleratorCapability],
    ) -> list[InstanceRecommendation]:
        """Filter *capability_map* down to compatible instance types.

        Iterates in the map's insertion order and keeps that order; there is
        no scoring.
        """
        recommendations: list[InstanceRecommendation] = []
        for instance_type, capability in capability_map.items():
            result = self.check_compatibility(requirement, capability)
            if not result.compatible:
                continue
            recommendations.append(
                InstanceRecommendation(
                    instance_type=instance_type,
                    family=capability.family,
                    available_versions=list(capability.available_versions),
                    info=result.info or result.warning,
                )
            )
        return recommendations
