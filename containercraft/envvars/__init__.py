"""Validation of runtime environment-variable overrides."""

from containercraft.envvars.models import (
    CommunityReport,
    EnvVarFinding,
    EnvVarValidationOptions,
    EnvVarValidationResult,
    FlagSpec,
    FlagType,
    FrameworkSpec,
    ReportStatus,
    Severity,
)
from containercraft.envvars.strategies import (
    CommunityReportsStrategy,
    IntrospectionStrategy,
    KnownFlagsStrategy,
    ValidationStrategy,
)
from containercraft.envvars.validator import EnvVarValidator, default_strategies

__all__ = [
    "CommunityReport",
    "CommunityReportsStrategy",
    "EnvVarFinding",
    "EnvVarValidationOptions",
    "EnvVarValidationResult",
    "EnvVarValidator",
    "FlagSpec",
    "FlagType",
    "FrameworkSpec",
    "IntrospectionStrategy",
    "KnownFlagsStrategy",
    "ReportStatus",
    "Severity",
    "ValidationStrategy",
    "default_strategies",
]
