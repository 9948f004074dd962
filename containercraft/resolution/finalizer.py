"""Turn a resolved configuration plus prompt answers into the final one.

The finalizer merges answers and fills required gaps with generated values.
It then pins the serving framework's registry entry, computes derived
fields, runs every per-value validator and stamps the build time.
Missing or invalid values are collected and returned together; only a
``StructuralError`` escapes as an exception.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from containercraft.registries import (
    profile_env_vars,
    profile_names,
    runtime_env_for,
    select_framework_version,
)
from containercraft.utils import sanitize_name

from .matrix import (
    DEFAULT_INSTANCE_TYPE,
    DEFAULT_MODEL_FORMAT,
    DEFAULT_MODEL_SERVER,
    FALLBACK_FRAMEWORK,
    FALLBACK_INSTANCE_TYPE,
    FALLBACK_MODEL_SERVER,
    ParameterMatrix,
    build_default_matrix,
)
from .models import (
    DERIVED,
    GENERATED,
    PROMPT,
    UNSET,
    FinalConfiguration,
    FinalizeResult,
    ParameterSpec,
    ResolvedConfiguration,
    Source,
    Violation,
)

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"

_ADJECTIVES = (
    "smart", "fast", "clever", "bright", "swift", "agile", "sharp", "quick",
    "wise", "keen", "bold", "sleek", "neat", "cool", "fresh", "prime",
)
_FRAMEWORK_WORDS = {
    "sklearn": ("sklearn", "scikit", "sk"),
    "xgboost": ("xgb", "xgboost", "boost"),
    "tensorflow": ("tf", "tensorflow", "tensor"),
    "transformers": ("llm", "transformer", "gpt", "bert", "ai"),
}
_SUFFIXES = (
    "model", "predictor", "classifier", "engine", "service", "api",
    "container", "deployment", "inference", "ml", "ai", "bot",
)
_BUILD_SHORT_NAMES = {
    "sklearn": "sklearn",
    "xgboost": "xgboost",
    "tensorflow": "tensorflow",
    "transformers": "llm",
}


def generate_project_name(framework: Optional[str], rng: Optional[random.Random] = None) -> str:
    """A random ``<adjective>-<framework word>-<suffix>`` name."""
    rng = rng or random.Random()
    words = _FRAMEWORK_WORDS.get(framework or "", ("ml",))
    return f"{rng.choice(_ADJECTIVES)}-{rng.choice(words)}-{rng.choice(_SUFFIXES)}"


def codebuild_project_name(project_name: str, framework: Optional[str], when: datetime) -> str:
    """``<project>-<framework>-build-<YYYYMMDD>`` made safe for CodeBuild."""
    short = _BUILD_SHORT_NAMES.get(framework or "", "ml")
    return sanitize_name(f"{project_name}-{short}-build-{when:%Y%m%d}")[:255]


class ConfigFinalizer:
    """Produce a ``FinalConfiguration`` or the list of reasons it can't.

    Args:
        matrix: Parameter rules; the default matrix when omitted.
        clock: Returns the current time; injected so stamps are testable.
        rng: Random source for generated project names.
        frameworks: Serving framework registry (``server -> version ->
            entry``).  When given, the server version, base image and
            runtime environment are filled from the selected entry.
    """

    def __init__(
        self,
        matrix: Optional[ParameterMatrix] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
        frameworks: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> None:
        self.matrix = matrix or build_default_matrix()
        self.frameworks = frameworks or {}
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.rng = rng or random.Random()
        self._generators: dict[str, Callable[[Mapping[str, Any]], Any]] = {
            "framework": lambda values: FALLBACK_FRAMEWORK,
            "model_server": lambda values: DEFAULT_MODEL_SERVER.get(
                values.get("framework"), FALLBACK_MODEL_SERVER
            ),
            "model_format": lambda values: DEFAULT_MODEL_FORMAT.get(values.get("framework")),
            "instance_type": lambda values: DEFAULT_INSTANCE_TYPE.get(
                values.get("framework"), FALLBACK_INSTANCE_TYPE
            ),
            "project_name": lambda values: generate_project_name(values.get("framework"), self.rng),
        }

    # -- Prompt gate -----------------------------------------------------------

    def should_skip_prompts(self, resolved: ResolvedConfiguration) -> bool:
        """True when ``skip_prompts`` is set or nothing promptable is missing."""
        if resolved.get("skip_prompts"):
            return True
        values = resolved.as_dict()
        for spec in self.matrix.required_promptable():
            if spec.is_required(values) and values.get(spec.name) is None:
                return False
        return True

    # -- Finalize --------------------------------------------------------------

    def finalize(
        self,
        resolved: ResolvedConfiguration,
        prompt_answers: Optional[Mapping[str, Any]] = None,
    ) -> FinalizeResult:
        """Merge, complete and validate *resolved*.

        Explicit resolved values always win; prompt answers only fill
        parameters that are unset or still on their default.

        Raises:
            StructuralError: If a value is too malformed to report as a
                violation (for example a garbled IAM role ARN).
        """
        values = resolved.as_dict()
        provenance = resolved.provenance
        for name in self.matrix.names():
            provenance.setdefault(name, UNSET)
            values.setdefault(name, None)

        self._apply_prompt_answers(values, provenance, resolved, prompt_answers or {})
        violations = self._fill_required(values, provenance)
        violations.extend(self._bind_server(values, provenance))

        now = self.clock()
        self._derive(values, provenance, resolved, now)
        violations.extend(self._validate_values(values))
        resolved.freeze()

        if violations:
            for violation in violations:
                logger.debug("Violation on %s: %s", violation.parameter, violation.message)
            return FinalizeResult(config=None, violations=violations)

        config = FinalConfiguration(
            values=values,
            provenance=provenance,
            build_timestamp=now.strftime(TIMESTAMP_FORMAT),
        )
        return FinalizeResult(config=config, violations=[])

    def _apply_prompt_answers(
        self,
        values: dict[str, Any],
        provenance: dict[str, str],
        resolved: ResolvedConfiguration,
        answers: Mapping[str, Any],
    ) -> None:
        for name, answer in answers.items():
            spec = self.matrix.get(name)
            if spec is None or not spec.promptable or answer is None:
                logger.debug("Discarding prompt answer for %s", name)
                continue
            if resolved.is_explicit(name):
                continue
            values[name] = answer
            provenance[name] = PROMPT

    def _fill_required(self, values: dict[str, Any], provenance: dict[str, str]) -> list[Violation]:
        violations: list[Violation] = []
        for spec in self.matrix:
            if not spec.is_required(values) or values.get(spec.name) is not None:
                continue
            generated = self._generate(spec, values)
            if generated is not None:
                logger.debug("Generated %s = %r", spec.name, generated)
                values[spec.name] = generated
                provenance[spec.name] = GENERATED
                continue
            violations.append(Violation(spec.name, f"Missing required parameter: {spec.name}"))
        return violations

    def _generate(self, spec: ParameterSpec, values: Mapping[str, Any]) -> Any:
        if not spec.auto_generate or spec.name not in self._generators:
            return None
        return self._generators[spec.name](values)

    def _bind_server(self, values: dict[str, Any], provenance: dict[str, str]) -> list[Violation]:
        """Pin the registry entry the image is built from.

        An explicit server version must be registered.  The base image and
        the runtime environment (entry defaults, profile, overrides) are
        taken from the same entry the validators check.
        """
        server = values.get("model_server")
        versions = self.frameworks.get(server) if server else None
        if not versions:
            return []

        requested = values.get("server_version")
        version, entry = select_framework_version(self.frameworks, server, requested)
        if requested is not None and str(requested) != version:
            return [
                Violation(
                    "server_version",
                    f"Model server '{server}' has no registered version {requested}. "
                    f"Registered versions: {', '.join(str(v) for v in versions)}",
                )
            ]
        if requested is None:
            values["server_version"] = version
            provenance["server_version"] = DERIVED
        if entry.get("base_image"):
            values["base_image"] = entry["base_image"]
            provenance["base_image"] = DERIVED

        violations: list[Violation] = []
        profile = values.get("framework_profile")
        if profile and profile_env_vars(entry, profile) is None:
            available = ", ".join(profile_names(entry)) or "none"
            violations.append(
                Violation(
                    "framework_profile",
                    f"Unknown framework profile '{profile}' for {server} {version}. "
                    f"Available profiles: {available}",
                )
            )
        values["runtime_env"] = runtime_env_for(entry, profile, values.get("env_overrides"))
        provenance["runtime_env"] = DERIVED
        return violations

    def _derive(
        self,
        values: dict[str, Any],
        provenance: dict[str, str],
        resolved: ResolvedConfiguration,
        now: datetime,
    ) -> None:
        if values.get("framework") == "transformers" and values.get("include_sample_model"):
            values["include_sample_model"] = False
            provenance["include_sample_model"] = DERIVED

        if (
            values.get("deploy_target") == "codebuild"
            and not values.get("codebuild_project_name")
            and values.get("project_name")
        ):
            values["codebuild_project_name"] = codebuild_project_name(
                values["project_name"], values.get("framework"), now
            )
            provenance["codebuild_project_name"] = DERIVED

        if (
            provenance.get("project_name") == Source.CLI_ARGUMENT.value
            and not resolved.is_explicit("destination_dir")
        ):
            values["destination_dir"] = f"./{values['project_name']}"
            provenance["destination_dir"] = DERIVED

    def _validate_values(self, values: Mapping[str, Any]) -> list[Violation]:
        violations: list[Violation] = []
        for spec in self.matrix:
            value = values.get(spec.name)
            if spec.validator is None or value is None:
                continue
            if spec.required and not spec.is_required(values):
                continue
            for message in spec.validator(value, values):
                violations.append(Violation(spec.name, message))
        return violations
