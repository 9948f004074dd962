"""Pydantic v2 models for runtime environment-variable validation."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FlagType(str, Enum):
    """Declared value type of a known flag."""
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    BOOLEAN = "boolean"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ReportStatus(str, Enum):
    """Community verdict on a variable."""
    VALID = "valid"
    INVALID = "invalid"
    DEPRECATED = "deprecated"


class FlagSpec(BaseModel):
    """What a serving framework is known to accept for one variable."""
    type: Optional[FlagType] = Field(default=None, description="Declared value type")
    min: Optional[float] = Field(default=None, description="Inclusive lower bound")
    max: Optional[float] = Field(default=None, description="Inclusive upper bound")
    deprecated: bool = Field(default=False)
    deprecation_message: str = Field(default="")
    replacement: Optional[str] = Field(default=None, description="Variable to use instead")
    description: str = Field(default="")


class CommunityReport(BaseModel):
    """A curated, externally contributed observation about a variable."""
    status: ReportStatus
    message: str = Field(default="")
    reporter: str = Field(default="community")


class FrameworkSpec(BaseModel):
    """The slice of a framework registry entry the env validator needs.

    ``None`` means the entry declares no such table; an empty mapping is a
    declared table with nothing in it.
    """
    name: str = Field(default="")
    version: str = Field(default="")
    known_flags: Optional[dict[str, FlagSpec]] = Field(default=None)
    community_reports: Optional[dict[str, list[CommunityReport]]] = Field(default=None)


class EnvVarFinding(BaseModel):
    """A single error or warning about one variable.

    ``variable`` is ``None`` for findings about the run itself (for example
    the experimental introspection notice).
    """
    variable: Optional[str] = None
    message: str
    severity: Severity = Severity.WARNING
    replacement: Optional[str] = None
    reports: list[CommunityReport] = Field(default_factory=list)


class EnvVarValidationOptions(BaseModel):
    """Strategy toggles.  ``enabled=False`` turns every strategy off."""
    enabled: bool = True
    use_known_flags: bool = True
    use_community_reports: bool = True
    use_introspection: bool = False


class EnvVarValidationResult(BaseModel):
    """Concatenated findings from every strategy that ran."""
    errors: list[EnvVarFinding] = Field(default_factory=list)
    warnings: list[EnvVarFinding] = Field(default_factory=list)
    strategies_used: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def messages(self) -> list[str]:
        """Flat ``"<severity>: <message>"`` lines, errors first."""
        return [f"error: {f.message}" for f in self.errors] + [
            f"warning: {f.message}" for f in self.warnings
        ]
