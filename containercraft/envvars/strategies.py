"""Environment-variable validation strategies.

Every strategy takes the same inputs (the variable map and the framework
spec) and returns a flat list of findings.  Strategies never raise for a bad
value; the caller decides what an error means.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from .models import (
    EnvVarFinding,
    EnvVarValidationOptions,
    FlagSpec,
    FlagType,
    FrameworkSpec,
    ReportStatus,
    Severity,
)

_INTEGER = re.compile(r"^[+-]?\d+$")
_FLOAT = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_BOOLEAN_WORDS = {"true", "false", "1", "0", "yes", "no"}


class ValidationStrategy(ABC):
    """Base class for a pluggable env-var check."""

    name: str = ""

    @abstractmethod
    def enabled(self, spec: FrameworkSpec, options: EnvVarValidationOptions) -> bool:
        """Whether this strategy should run for *spec* under *options*."""

    @abstractmethod
    def run(self, env_map: Mapping[str, Any], spec: FrameworkSpec) -> list[EnvVarFinding]:
        """Inspect *env_map* and return findings."""


# ---------------------------------------------------------------------------
# Known flags
# ---------------------------------------------------------------------------


class KnownFlagsStrategy(ValidationStrategy):
    """Check deprecation, declared type and numeric bounds of known flags.

    Variables the framework spec does not list are skipped silently.  Checks
    accumulate: a deprecated flag with a bad type yields both findings.
    """

    name = "known-flags"

    def enabled(self, spec: FrameworkSpec, options: EnvVarValidationOptions) -> bool:
        return options.use_known_flags and spec.known_flags is not None

    def run(self, env_map: Mapping[str, Any], spec: FrameworkSpec) -> list[EnvVarFinding]:
        findings: list[EnvVarFinding] = []
        known = spec.known_flags or {}
        for variable, value in env_map.items():
            flag = known.get(variable)
            if flag is None:
                continue
            findings.extend(self._check(variable, value, flag))
        return findings

    def _check(self, variable: str, value: Any, flag: FlagSpec) -> list[EnvVarFinding]:
        findings: list[EnvVarFinding] = []
        text = _as_text(value)

        if flag.deprecated:
            message = f"{variable} is deprecated."
            if flag.deprecation_message:
                message = f"{message} {flag.deprecation_message}"
            if flag.replacement:
                message = f"{message} Use {flag.replacement} instead."
            findings.append(
                EnvVarFinding(
                    variable=variable,
                    message=message,
                    severity=Severity.WARNING,
                    replacement=flag.replacement,
                )
            )

        if flag.type is not None and not coerces_to(text, flag.type):
            findings.append(
                EnvVarFinding(
                    variable=variable,
                    message=f"{variable} must be of type {flag.type.value}, got {text!r}",
                    severity=Severity.ERROR,
                )
            )

        number = _as_number(text)
        if number is not None:
            if flag.min is not None and number < flag.min:
                findings.append(
                    EnvVarFinding(
                        variable=variable,
                        message=f"{variable} must be >= {_fmt(flag.min)}, got {text}",
                        severity=Severity.ERROR,
                    )
                )
            if flag.max is not None and number > flag.max:
                findings.append(
                    EnvVarFinding(
                        variable=variable,
                        message=f"{variable} must be <= {_fmt(flag.max)}, got {text}",
                        severity=Severity.ERROR,
                    )
                )

        return findings


# ---------------------------------------------------------------------------
# Community reports
# ---------------------------------------------------------------------------


class CommunityReportsStrategy(ValidationStrategy):
    """Surface curated community reports as advisory warnings."""

    name = "community-reports"
    _FLAGGED = (ReportStatus.INVALID, ReportStatus.DEPRECATED)

    def enabled(self, spec: FrameworkSpec, options: EnvVarValidationOptions) -> bool:
        return options.use_community_reports and spec.community_reports is not None

    def run(self, env_map: Mapping[str, Any], spec: FrameworkSpec) -> list[EnvVarFinding]:
        findings: list[EnvVarFinding] = []
        reports = spec.community_reports or {}
        for variable in env_map:
            flagged = [
                report
                for report in reports.get(variable, [])
                if report.status in self._FLAGGED
            ]
            if not flagged:
                continue
            details = "; ".join(
                f"{r.status.value}: {r.message or 'no details'} (reported by {r.reporter})"
                for r in flagged
            )
            findings.append(
                EnvVarFinding(
                    variable=variable,
                    message=f"Community reports indicate potential issues with {variable}: {details}",
                    severity=Severity.WARNING,
                    reports=flagged,
                )
            )
        return findings


# ---------------------------------------------------------------------------
# Introspection (placeholder)
# ---------------------------------------------------------------------------


class IntrospectionStrategy(ValidationStrategy):
    """Opt-in container introspection.

    Running the serving image to observe how it reacts to each variable is
    not implemented; the strategy only records that it was requested.
    """

    name = "introspection"

    def enabled(self, spec: FrameworkSpec, options: EnvVarValidationOptions) -> bool:
        return options.use_introspection

    def run(self, env_map: Mapping[str, Any], spec: FrameworkSpec) -> list[EnvVarFinding]:
        return [
            EnvVarFinding(
                variable=None,
                message=(
                    "Container introspection validation is experimental and not tested "
                    "in automated builds; no values were inspected."
                ),
                severity=Severity.WARNING,
            )
        ]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def coerces_to(text: str, flag_type: FlagType) -> bool:
    """Return ``True`` if *text* can be read as *flag_type*."""
    stripped = text.strip()
    if flag_type is FlagType.INTEGER:
        return bool(_INTEGER.match(stripped))
    if flag_type is FlagType.FLOAT:
        return bool(_FLOAT.match(stripped))
    if flag_type is FlagType.BOOLEAN:
        return stripped.lower() in _BOOLEAN_WORDS
    return True


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_number(text: str) -> Optional[float]:
    stripped = text.strip()
    if not _FLOAT.match(stripped):
        return None
    return float(stripped)


def _fmt(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)
