"""Multi-source parameter resolution."""

from containercraft.resolution.finalizer import (
    ConfigFinalizer,
    codebuild_project_name,
    generate_project_name,
)
from containercraft.resolution.matrix import ParameterMatrix, build_default_matrix
from containercraft.resolution.models import (
    PRECEDENCE,
    ConfigurationError,
    FinalConfiguration,
    FinalizeResult,
    ParameterSpec,
    ParamType,
    ResolvedConfiguration,
    Source,
    StructuralError,
    Violation,
)
from containercraft.resolution.resolver import ConfigResolver, coerce_boolean
from containercraft.resolution.sources import RawSourceValues, load_sources

__all__ = [
    "PRECEDENCE",
    "ConfigFinalizer",
    "ConfigResolver",
    "ConfigurationError",
    "FinalConfiguration",
    "FinalizeResult",
    "ParamType",
    "ParameterMatrix",
    "ParameterSpec",
    "RawSourceValues",
    "ResolvedConfiguration",
    "Source",
    "StructuralError",
    "Violation",
    "build_default_matrix",
    "codebuild_project_name",
    "coerce_boolean",
    "generate_project_name",
    "load_sources",
]
