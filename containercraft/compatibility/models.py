"""Pydantic v2 models for accelerator compatibility checks.

A serving framework declares an ``AcceleratorRequirement`` (one family, one
version); an instance type declares an ``AcceleratorCapability`` (one family,
an ordered set of versions).  Checks produce a ``ValidationResult``.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, model_validator


class AcceleratorRequirement(BaseModel):
    """Accelerator a serving framework needs, e.g. ``cuda`` ``12.1``."""

    family: str = Field(..., description="Accelerator family: cuda, neuron, rocm, cpu, ...")
    version: Optional[str] = Field(default=None, description="Required version, None for cpu")


class AcceleratorCapability(BaseModel):
    """Accelerator an instance type provides."""

    family: str = Field(..., description="Accelerator family provided by the instance")
    available_versions: list[str] = Field(
        default_factory=list, description="Supported versions in registry order"
    )
    default_version: Optional[str] = Field(default=None)


class ValidationResult(BaseModel):
    """Outcome of a single compatibility check.

    Exactly one of ``error`` / ``warning`` / ``info`` is set.  An incompatible
    result always carries an error message.
    """

    compatible: bool
    error: Optional[str] = None
    warning: Optional[str] = None
    info: Optional[str] = None

    @model_validator(mode="after")
    def _check_message(self) -> "ValidationResult":
        if not self.compatible and not self.error:
            raise ValueError("an incompatible result must carry an error message")
        populated = [m for m in (self.error, self.warning, self.info) if m]
        if len(populated) > 1:
            raise ValueError("only one of error, warning or info may be set")
        return self

    @classmethod
    def ok(cls, info: str) -> "ValidationResult":
        return cls(compatible=True, info=info)

    @classmethod
    def failed(cls, error: str) -> "ValidationResult":
        return cls(compatible=False, error=error)

    @classmethod
    def unchecked(cls, warning: str) -> "ValidationResult":
        return cls(compatible=True, warning=warning)


class InstanceRecommendation(BaseModel):
    """A compatible instance type found by ``get_recommended_instance_types``."""

    instance_type: str
    family: str
    available_versions: list[str] = Field(default_factory=list)
    info: Optional[str] = None
