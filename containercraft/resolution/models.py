"""Data model for multi-source parameter resolution.

Defines the ranked input sources, the per-parameter ``ParameterSpec`` rules,
the mutable-then-frozen ``ResolvedConfiguration`` and the read-only
``FinalConfiguration`` handed to the template stage.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Sources & provenance markers
# ---------------------------------------------------------------------------

class Source(str, Enum):
    """Places a parameter value can come from, highest precedence first."""
    CLI_OPTION = "cli_option"
    CLI_ARGUMENT = "cli_argument"
    ENV_VAR = "env_var"
    CONFIG_FILE = "config_file"
    LOCAL_CONFIG_FILE = "local_config_file"
    PROJECT_SECTION = "project_section"


#: Fixed resolution order.  Built-in defaults come after the last entry.
PRECEDENCE: tuple[Source, ...] = (
    Source.CLI_OPTION,
    Source.CLI_ARGUMENT,
    Source.ENV_VAR,
    Source.CONFIG_FILE,
    Source.LOCAL_CONFIG_FILE,
    Source.PROJECT_SECTION,
)

#: Both configuration documents are always granted together.
CONFIG_DOCUMENTS: frozenset[Source] = frozenset({Source.CONFIG_FILE, Source.LOCAL_CONFIG_FILE})

DEFAULT = "default"
UNSET = "unset"
PROMPT = "prompt"
DERIVED = "derived"
GENERATED = "generated"

_EXPLICIT_ORIGINS = frozenset(s.value for s in Source)


class ParamType(str, Enum):
    """How raw source values are coerced."""
    STRING = "string"
    BOOLEAN = "boolean"
    MAPPING = "mapping"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class StructuralError(ValueError):
    """A value is so malformed it cannot be used at all.

    Raised immediately instead of being collected with other violations.
    """

    def __init__(self, parameter: str, value: Any, message: str) -> None:
        self.parameter = parameter
        self.value = value
        super().__init__(message)


class ConfigurationError(Exception):
    """An explicitly referenced configuration source could not be read."""

    def __init__(self, message: str, parameter: str | None = None, source: Source | None = None) -> None:
        self.parameter = parameter
        self.source = source
        super().__init__(message)


# ---------------------------------------------------------------------------
# Parameter rules
# ---------------------------------------------------------------------------

Validator = Callable[[Any, Mapping[str, Any]], list[str]]
Condition = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True)
class ParameterSpec:
    """Static rules for one logical parameter.

    Pure data apart from two optional callables: ``validator`` receives the
    value and the surrounding configuration and returns error messages;
    ``required_when`` narrows ``required`` to configurations it accepts.
    """

    name: str
    allowed_sources: frozenset[Source] = frozenset()
    cli_option: Optional[str] = None
    env_var: Optional[str] = None
    default: Any = None
    required: bool = False
    promptable: bool = False
    auto_generate: bool = False
    value_type: ParamType = ParamType.STRING
    validator: Optional[Validator] = None
    required_when: Optional[Condition] = None
    description: str = ""

    def allows(self, source: Source) -> bool:
        return source in self.allowed_sources

    def is_required(self, values: Mapping[str, Any]) -> bool:
        if not self.required:
            return False
        return self.required_when is None or self.required_when(values)


@dataclass(frozen=True)
class Violation:
    """A problem found while finalizing, tied to one parameter."""

    parameter: str
    message: str

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Resolved / final configuration
# ---------------------------------------------------------------------------

class ResolvedConfiguration:
    """Parameter values after precedence and whitelist filtering.

    ``provenance`` records, per parameter, the winning ``Source`` value or one
    of ``"default"`` / ``"unset"``.  Instances are writable only until
    :meth:`freeze` is called.
    """

    def __init__(
        self,
        values: Optional[Mapping[str, Any]] = None,
        provenance: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._values: dict[str, Any] = dict(values or {})
        self._provenance: dict[str, str] = dict(provenance or {})
        self._frozen = False

    def set(self, name: str, value: Any, origin: str) -> None:
        if self._frozen:
            raise RuntimeError(f"ResolvedConfiguration is frozen; cannot set {name!r}")
        self._values[name] = value
        self._provenance[name] = origin

    def freeze(self) -> "ResolvedConfiguration":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # -- Read access ---------------------------------------------------------

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def origin(self, name: str) -> str:
        return self._provenance.get(name, UNSET)

    def is_explicit(self, name: str) -> bool:
        """True when the value came from a real source rather than a default."""
        return self.origin(name) in _EXPLICIT_ORIGINS

    def explicit(self) -> dict[str, Any]:
        """Only the values supplied by a source; defaults are left out."""
        return {
            name: value
            for name, value in self._values.items()
            if self.is_explicit(name)
        }

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)

    @property
    def provenance(self) -> dict[str, str]:
        return dict(self._provenance)

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolvedConfiguration):
            return NotImplemented
        return self._values == other._values and self._provenance == other._provenance

    def __repr__(self) -> str:
        return f"ResolvedConfiguration({self._values!r}, provenance={self._provenance!r})"


class FinalConfiguration(BaseModel):
    """The configuration the template stage reads from.  Never mutated."""

    model_config = ConfigDict(frozen=True)

    values: dict[str, Any] = Field(default_factory=dict)
    provenance: dict[str, str] = Field(default_factory=dict)
    build_timestamp: str = Field(..., description="UTC generation stamp, YYYY-MM-DDTHH-MM-SS")

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self.values[name]

    def template_context(self) -> dict[str, Any]:
        """A private deep copy of the values for rendering."""
        context = copy.deepcopy(self.values)
        context["build_timestamp"] = self.build_timestamp
        return context


@dataclass
class FinalizeResult:
    """Outcome of :meth:`ConfigFinalizer.finalize`."""

    config: Optional[FinalConfiguration] = None
    violations: list[Violation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.config is not None and not self.violations

    def messages(self) -> list[str]:
        return [v.message for v in self.violations]
