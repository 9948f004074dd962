"""Family name -> comparator lookup table."""

from __future__ import annotations

from typing import Optional

from .comparators import (
    AcceleratorComparator,
    CpuComparator,
    MajorMinorComparator,
    SemanticVersionComparator,
)


class ComparatorRegistry:
    """Maps accelerator family names to comparators.

    Family names are matched case-insensitively.  The registry starts with the
    built-in families unless ``include_defaults=False``.
    """

    def __init__(self, include_defaults: bool = True) -> None:
        self._comparators: dict[str, AcceleratorComparator] = {}
        if include_defaults:
            self.register_comparator("cuda", MajorMinorComparator())
            self.register_comparator(
                "neuron",
                SemanticVersionComparator(
                    "Neuron SDK",
                    hint="Consider ml.inf2 or ml.trn1 instances for current Neuron SDK releases.",
                ),
            )
            self.register_comparator(
                "rocm",
                SemanticVersionComparator(
                    "ROCm",
                    hint="AMD GPU instances with ROCm support may be limited in your region.",
                ),
            )
            self.register_comparator("cpu", CpuComparator())

    def register_comparator(self, family: str, comparator: AcceleratorComparator) -> None:
        """Add *comparator* for *family*, replacing any previous registration."""
        if not isinstance(comparator, AcceleratorComparator):
            raise TypeError(
                f"comparator for {family!r} must be an AcceleratorComparator, "
                f"got {type(comparator).__name__}"
            )
        self._comparators[_key(family)] = comparator

    def get(self, family: str) -> Optional[AcceleratorComparator]:
        return self._comparators.get(_key(family))

    def families(self) -> list[str]:
        """Registered family names in registration order."""
        return list(self._comparators)

    def __contains__(self, family: object) -> bool:
        return isinstance(family, str) and _key(family) in self._comparators

    def __len__(self) -> int:
        return len(self._comparators)


def _key(family: str) -> str:
    return family.strip().lower()
