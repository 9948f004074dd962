"""Per-family accelerator version comparators.

Each comparator answers one question: does any of the versions an instance
provides satisfy the version a framework requires?  Comparators are looked up
by family name through :class:`~containercraft.compatibility.registry.ComparatorRegistry`,
so new families only need a new subclass and a ``register_comparator`` call.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from .models import ValidationResult

logger = logging.getLogger(__name__)

_NUMERIC_PART = re.compile(r"^\d+$")


def parse_version(version: Optional[str], min_parts: int = 2) -> Optional[tuple[int, ...]]:
    """Split a dotted version string into integers.

    Returns ``None`` when the string is empty, has fewer than *min_parts*
    components, or contains a non-numeric component.

    Examples::

        parse_version("12.1")       -> (12, 1)
        parse_version("2.15.0")     -> (2, 15, 0)
        parse_version("12")         -> None
        parse_version("12.x")       -> None
    """
    if not version:
        return None
    parts = str(version).strip().split(".")
    if len(parts) < min_parts or not all(_NUMERIC_PART.match(p) for p in parts):
        return None
    return tuple(int(p) for p in parts)


class AcceleratorComparator(ABC):
    """Base class for accelerator-family comparators."""

    #: Human-readable family label used in messages, e.g. ``"CUDA"``.
    label: str = "accelerator"

    @abstractmethod
    def is_compatible(self, required: Optional[str], available: Sequence[str]) -> ValidationResult:
        """Compare *required* against every entry of *available*."""

    def mismatch_message(self, required: Optional[str], available: Sequence[str]) -> str:
        provided = ", ".join(available) if available else "no versions"
        return (
            f"Framework requires {self.label} {required}, but instance only supports {provided}."
        )


class _MajorMinorRule(AcceleratorComparator):
    """Shared rule: same major, minor >= required minor, anything after ignored."""

    min_parts: int = 2

    def is_compatible(self, required: Optional[str], available: Sequence[str]) -> ValidationResult:
        wanted = parse_version(required, self.min_parts)
        if wanted is None:
            return ValidationResult.failed(
                f"Cannot compare {self.label} versions: required version {required!r} is not "
                f"a valid {self.version_shape} version."
            )

        for candidate in available:
            offered = parse_version(candidate, self.min_parts)
            if offered is None:
                logger.debug("Skipping unparsable %s version %r", self.label, candidate)
                continue
            if offered[0] == wanted[0] and offered[1] >= wanted[1]:
                return ValidationResult.ok(
                    f"Using {self.label} {candidate} (compatible with required {required})"
                )

        return ValidationResult.failed(self.mismatch_message(required, available))

    @property
    def version_shape(self) -> str:
        return "major.minor" if self.min_parts == 2 else "major.minor.patch"


class MajorMinorComparator(_MajorMinorRule):
    """Two-part ``major.minor`` toolkit versions (CUDA)."""

    label = "CUDA"
    min_parts = 2

    def mismatch_message(self, required: Optional[str], available: Sequence[str]) -> str:
        return (
            super().mismatch_message(required, available)
            + f" Consider an instance family that ships {self.label} {_major(required)}.x."
        )


class SemanticVersionComparator(_MajorMinorRule):
    """Three-part ``major.minor.patch`` SDK versions (Neuron SDK, ROCm).

    The patch component is parsed but never compared.
    """

    min_parts = 3

    def __init__(self, label: str, hint: str = "") -> None:
        self.label = label
        self.hint = hint

    def mismatch_message(self, required: Optional[str], available: Sequence[str]) -> str:
        message = super().mismatch_message(required, available)
        return f"{message} {self.hint}".strip()


class CpuComparator(AcceleratorComparator):
    """CPU inference has no accelerator version to satisfy."""

    label = "CPU"

    def is_compatible(self, required: Optional[str], available: Sequence[str]) -> ValidationResult:
        return ValidationResult.ok("CPU-based inference (no accelerator version requirements)")


def _major(version: Optional[str]) -> str:
    return str(version or "").split(".")[0] or "?"
