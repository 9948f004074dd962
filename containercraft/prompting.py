"""Interactive prompts for parameters no source supplied.

Questions are grouped in three phases (core, modules, infrastructure) and
asked with rich's ``Prompt`` / ``Confirm``.  Values the resolver already
found are used as defaults; explicitly supplied values are never asked for.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from rich.console import Console
from rich.prompt import Confirm, Prompt

from containercraft.resolution.matrix import (
    AWS_REGIONS,
    CODEBUILD_COMPUTE_TYPES,
    DEFAULT_INSTANCE_TYPE,
    DEFAULT_MODEL_FORMAT,
    DEFAULT_MODEL_SERVER,
    DEPLOY_TARGETS,
    FALLBACK_FRAMEWORK,
    FALLBACK_INSTANCE_TYPE,
    MODEL_FORMATS,
    MODEL_SERVERS,
    SUPPORTED_FRAMEWORKS,
    ParameterMatrix,
    build_default_matrix,
)
from containercraft.resolution.models import ParamType, ResolvedConfiguration
from containercraft.utils import console as default_console

logger = logging.getLogger(__name__)

PHASES: dict[str, tuple[str, ...]] = {
    "core": ("framework", "model_server", "model_format", "model_name"),
    "modules": ("include_sample_model", "include_testing"),
    "infrastructure": (
        "deploy_target",
        "codebuild_compute_type",
        "instance_type",
        "aws_region",
        "aws_role_arn",
    ),
}

_QUESTIONS: dict[str, str] = {
    "framework": "Which ML framework are you using?",
    "model_server": "Which model server should serve it?",
    "model_format": "In which format is the model saved?",
    "model_name": "Which Hugging Face model should be served?",
    "include_sample_model": "Include a sample Abalone training script?",
    "include_testing": "Include test scripts?",
    "deploy_target": "Where should the image be built and deployed?",
    "codebuild_compute_type": "Which CodeBuild compute type?",
    "instance_type": "Which instance type should host the endpoint?",
    "aws_region": "Which AWS region?",
    "aws_role_arn": "IAM role ARN for the endpoint (leave empty to set later)",
}


class PromptRunner:
    """Ask for the promptable parameters a run is still missing."""

    def __init__(self, matrix: Optional[ParameterMatrix] = None, console: Optional[Console] = None) -> None:
        self.matrix = matrix or build_default_matrix()
        self.console = console or default_console

    async def run(self, resolved: ResolvedConfiguration) -> dict[str, Any]:
        """Collect answers in a worker thread so the event loop stays free."""
        return await asyncio.to_thread(self.ask_all, resolved)

    def ask_all(self, resolved: ResolvedConfiguration) -> dict[str, Any]:
        """Ask every applicable question, phase by phase.

        Returns:
            ``{parameter: answer}`` for the questions that were asked and
            answered.  Empty answers are left out.
        """
        current = resolved.as_dict()
        answers: dict[str, Any] = {}
        for phase, names in PHASES.items():
            announced = False
            for name in names:
                # Earlier answers change which later questions apply.
                if not self._should_ask(name, resolved, current):
                    continue
                if not announced:
                    self.console.print(f"\n[bold cyan]{phase.capitalize()}[/bold cyan]")
                    announced = True
                answer = self.ask(name, current)
                if answer is None or answer == "":
                    continue
                answers[name] = answer
                current[name] = answer
        logger.debug("Collected %d prompt answer(s)", len(answers))
        return answers

    def ask(self, name: str, current: dict[str, Any]) -> Any:
        """Ask a single question; the default comes from *current*."""
        spec = self.matrix[name]
        question = _QUESTIONS.get(name, name.replace("_", " ").capitalize())
        default = current.get(name)
        if default is None:
            default = self._suggested(name, current)

        if spec.value_type is ParamType.BOOLEAN:
            return Confirm.ask(question, default=bool(default), console=self.console)

        choices = self._choices(name, current)
        if choices and default not in choices:
            default = choices[0]
        return Prompt.ask(
            question,
            choices=choices or None,
            default="" if default is None else str(default),
            console=self.console,
        )

    # -- Internals -------------------------------------------------------------

    def _should_ask(self, name: str, resolved: ResolvedConfiguration, current: dict[str, Any]) -> bool:
        spec = self.matrix.get(name)
        if spec is None or not spec.promptable:
            return False
        if spec.required_when is not None and not spec.required_when(current):
            return False
        return not resolved.is_explicit(name) and self._applies(name, current)

    def _applies(self, name: str, current: dict[str, Any]) -> bool:
        framework = current.get("framework")
        if name == "model_name":
            return framework == "transformers"
        if name == "include_sample_model":
            return framework != "transformers"
        if name == "codebuild_compute_type":
            return current.get("deploy_target") == "codebuild"
        return True

    def _choices(self, name: str, current: dict[str, Any]) -> list[str]:
        framework = current.get("framework") or FALLBACK_FRAMEWORK
        if name == "framework":
            return list(SUPPORTED_FRAMEWORKS)
        if name == "model_server":
            return list(MODEL_SERVERS.get(framework, ()))
        if name == "model_format":
            return list(MODEL_FORMATS.get(framework, ()))
        if name == "deploy_target":
            return list(DEPLOY_TARGETS)
        if name == "codebuild_compute_type":
            return list(CODEBUILD_COMPUTE_TYPES)
        if name == "aws_region":
            return list(AWS_REGIONS)
        return []

    def _suggested(self, name: str, current: dict[str, Any]) -> Any:
        framework = current.get("framework") or FALLBACK_FRAMEWORK
        if name == "framework":
            return FALLBACK_FRAMEWORK
        if name == "model_server":
            return DEFAULT_MODEL_SERVER.get(framework)
        if name == "model_format":
            return DEFAULT_MODEL_FORMAT.get(framework)
        if name == "instance_type":
            return DEFAULT_INSTANCE_TYPE.get(framework, FALLBACK_INSTANCE_TYPE)
        return None
