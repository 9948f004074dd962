"""Runs the configured env-var strategies and merges their findings."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from .models import (
    EnvVarValidationOptions,
    EnvVarValidationResult,
    FrameworkSpec,
    Severity,
)
from .strategies import (
    CommunityReportsStrategy,
    IntrospectionStrategy,
    KnownFlagsStrategy,
    ValidationStrategy,
)

logger = logging.getLogger(__name__)


def default_strategies() -> list[ValidationStrategy]:
    """Built-in strategies in the order their findings are reported."""
    return [KnownFlagsStrategy(), CommunityReportsStrategy(), IntrospectionStrategy()]


class EnvVarValidator:
    """Validates runtime environment-variable overrides for a serving framework."""

    def __init__(self, strategies: Optional[Sequence[ValidationStrategy]] = None) -> None:
        self.strategies = list(strategies) if strategies is not None else default_strategies()

    def validate(
        self,
        env_map: Mapping[str, Any],
        framework_spec: FrameworkSpec | Mapping[str, Any],
        options: EnvVarValidationOptions | Mapping[str, Any] | None = None,
    ) -> EnvVarValidationResult:
        """Validate *env_map* against *framework_spec*.

        Args:
            env_map: Variable name -> value overrides to check.
            framework_spec: Known flags and community reports for the
                framework; a plain registry dict is accepted too.
            options: Strategy toggles.  ``enabled=False`` returns an empty
                result without running anything.

        Returns:
            Errors and warnings from every strategy that ran, plus the names
            of those strategies.
        """
        opts = _coerce_options(options)
        if not opts.enabled:
            return EnvVarValidationResult()

        spec = (
            framework_spec
            if isinstance(framework_spec, FrameworkSpec)
            else FrameworkSpec.model_validate(dict(framework_spec))
        )

        result = EnvVarValidationResult()
        for strategy in self.strategies:
            if not strategy.enabled(spec, opts):
                continue
            result.strategies_used.append(strategy.name)
            for finding in strategy.run(env_map, spec):
                if finding.severity is Severity.ERROR:
                    result.errors.append(finding)
                else:
                    result.warnings.append(finding)

        logger.debug(
            "Env var validation for %s %s: %d error(s), %d warning(s) via %s",
            spec.name or "<framework>",
            spec.version,
            len(result.errors),
            len(result.warnings),
            ", ".join(result.strategies_used) or "no strategies",
        )
        return result


def _coerce_options(
    options: EnvVarValidationOptions | Mapping[str, Any] | None,
) -> EnvVarValidationOptions:
    if options is None:
        return EnvVarValidationOptions()
    if isinstance(options, EnvVarValidationOptions):
        return options
    return EnvVarValidationOptions.model_validate(dict(options))
