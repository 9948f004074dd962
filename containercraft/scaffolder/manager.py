"""Decide which templates a configuration needs."""

from __future__ import annotations

from fnmatch import fnmatch
from typing import Any, Mapping

from containercraft.resolution.matrix import DEPLOY_TARGETS, MODEL_SERVERS
from containercraft.resolution.models import FinalConfiguration


class TemplateError(Exception):
    """The templates cannot produce a project for this configuration."""


# Flask/FastAPI serving code, not used by the LLM servers.
_TRANSFORMER_EXCLUSIONS = (
    "code/model_handler.py",
    "code/serve.py",
    "requirements.txt",
    "test/test_local_image.sh",
)
# vLLM/SGLang entrypoint.
_CLASSIC_EXCLUSIONS = ("code/serve",)
_CODEBUILD_EXCLUSIONS = ("deploy/build_and_push.sh",)
_SAGEMAKER_EXCLUSIONS = ("buildspec.yml", "deploy/submit_build.sh")


class TemplateManager:
    """Template selection for one ``FinalConfiguration``."""

    def __init__(self, config: FinalConfiguration | Mapping[str, Any]) -> None:
        self.values = dict(config.values if isinstance(config, FinalConfiguration) else config)

    def validate(self) -> None:
        """Raise ``TemplateError`` for combinations the templates cannot serve."""
        framework = self.values.get("framework")
        server = self.values.get("model_server")
        if framework not in MODEL_SERVERS:
            raise TemplateError(f"{framework} not implemented yet for framework.")
        if server not in MODEL_SERVERS[framework]:
            raise TemplateError(f"{server} not implemented yet for model server with {framework}.")
        target = self.values.get("deploy_target")
        if target not in DEPLOY_TARGETS:
            raise TemplateError(f"{target} not implemented yet for deploy target.")

    def ignore_patterns(self) -> list[str]:
        """Glob patterns (relative output paths) of files to leave out."""
        patterns: list[str] = []
        if self.values.get("framework") == "transformers":
            patterns.extend(_TRANSFORMER_EXCLUSIONS)
        else:
            patterns.extend(_CLASSIC_EXCLUSIONS)

        if self.values.get("deploy_target") == "codebuild":
            patterns.extend(_CODEBUILD_EXCLUSIONS)
        else:
            patterns.extend(_SAGEMAKER_EXCLUSIONS)

        if not self.values.get("include_sample_model"):
            patterns.append("sample_model/*")
        if not self.values.get("include_testing"):
            patterns.append("test/*")
        return patterns

    def is_ignored(self, relative_path: str) -> bool:
        return any(fnmatch(relative_path, pattern) for pattern in self.ignore_patterns())
