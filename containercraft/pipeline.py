"""ContainerCraft generation run and command-line entry point.

A run walks through the stages in a fixed order:

1. Load every input source (CLI, environment, config documents, pyproject).
2. Resolve one configuration with precedence and source whitelisting.
3. Check accelerator compatibility between serving framework and instance.
4. Validate the runtime environment variables the image will carry.
5. Prompt for anything still missing (unless skipped).
6. Finalize: generate, derive and validate values.  Checks 3 and 4 run
   again when prompts or generated values changed what they depend on.
7. Render the project from templates (unless ``--dry-run``).

Usage::

    containercraft my-llm-api --framework transformers --model-server vllm --skip-prompts
    containercraft --config ./containercraft.yaml --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from rich.panel import Panel
from rich.table import Table

from containercraft.compatibility import (
    CompatibilityValidator,
    InstanceRecommendation,
    ValidationResult,
)
from containercraft.config import Settings
from containercraft.envvars import EnvVarValidationOptions, EnvVarValidationResult, EnvVarValidator
from containercraft.prompting import PromptRunner
from containercraft.registries import (
    RegistryError,
    capability_for,
    capability_map,
    framework_spec_for,
    load_framework_registry,
    load_instance_mapping,
    requirement_for,
    runtime_env_for,
    select_framework_version,
)
from containercraft.resolution import (
    ConfigFinalizer,
    ConfigResolver,
    ConfigurationError,
    FinalConfiguration,
    ParameterMatrix,
    ParamType,
    StructuralError,
    build_default_matrix,
    load_sources,
)
from containercraft.scaffolder import ProjectGenerator, TemplateError, TemplateRenderer
from containercraft.utils import (
    configure_logging,
    console,
    print_error,
    print_info,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
)

_MASKED = {"hf_token"}

# Parameters the compatibility and env-var checks read, besides the version.
_VALIDATION_INPUTS = (
    "model_server",
    "instance_type",
    "framework_profile",
    "env_overrides",
    "validate_env_vars",
)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass
class RunResult:
    """Everything a run produced, successful or not."""

    success: bool = False
    final_config: Optional[FinalConfiguration] = None
    violations: list[str] = field(default_factory=list)
    compatibility: Optional[ValidationResult] = None
    recommendations: list[InstanceRecommendation] = field(default_factory=list)
    env_validation: Optional[EnvVarValidationResult] = None
    project_path: Optional[Path] = None

    @property
    def hard_errors(self) -> list[str]:
        errors: list[str] = []
        if self.compatibility is not None and not self.compatibility.compatible:
            errors.append(self.compatibility.error or "Incompatible accelerator")
        if self.env_validation is not None:
            errors.extend(f.message for f in self.env_validation.errors)
        return errors

    @property
    def warnings(self) -> list[str]:
        warnings: list[str] = []
        if self.compatibility is not None and self.compatibility.warning:
            warnings.append(self.compatibility.warning)
        if self.env_validation is not None:
            warnings.extend(f.message for f in self.env_validation.warnings)
        return warnings


# ---------------------------------------------------------------------------
# GenerationRun
# ---------------------------------------------------------------------------


class GenerationRun:
    """One invocation of the tool.

    Args:
        settings: Tool settings (registry/template locations, strict mode).
        matrix: Parameter rules; the default matrix when omitted.
        env: Environment snapshot used for env-var sources and ``$NAME``
            tokens.  Never read from ``os.environ`` here.
        cwd: Directory searched for conventional config documents and used
            as the base for relative destinations.
        prompt_runner: Collects interactive answers.
        generator: Renders the project.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        matrix: Optional[ParameterMatrix] = None,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
        prompt_runner: Optional[PromptRunner] = None,
        generator: Optional[ProjectGenerator] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.matrix = matrix or build_default_matrix()
        self.env: dict[str, str] = dict(env or {})
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()
        self.prompt_runner = prompt_runner or PromptRunner(self.matrix)
        self.generator = generator
        self.frameworks = load_framework_registry(self.settings.frameworks_path)
        self.instances = load_instance_mapping(self.settings.instances_path)
        self.resolver = ConfigResolver(self.matrix, self.env)
        self.finalizer = ConfigFinalizer(self.matrix, frameworks=self.frameworks)
        self.compatibility_validator = CompatibilityValidator()
        self.env_validator = EnvVarValidator()

    async def run(
        self,
        options: Mapping[str, Any],
        positional: Sequence[str] = (),
        *,
        dry_run: bool = False,
    ) -> RunResult:
        """Execute every stage and return the collected result.

        Raises:
            ConfigurationError: An explicitly referenced config document is
                missing or unreadable.
            StructuralError: A value is too malformed to continue with.
            TemplateError: The templates cannot serve the configuration.
        """
        result = RunResult()

        print_stage_header("resolve", "Resolve configuration")
        raw = await load_sources(
            options=options,
            positional=positional,
            env=self.env,
            cwd=self.cwd,
            matrix=self.matrix,
            settings=self.settings,
        )
        for source, path in raw.locations.items():
            print_info(f"Read {source.value.replace('_', ' ')} from {path}")
        resolved, _ = self.resolver.resolve(raw)

        print_stage_header("validate", "Validate compatibility")
        early = resolved.as_dict()
        checked = self._validation_key(early)
        self._validate(result, early)

        answers: dict[str, Any] = {}
        if not self.finalizer.should_skip_prompts(resolved):
            print_stage_header("prompt", "Configure project")
            answers = await self.prompt_runner.run(resolved)

        finalized = self.finalizer.finalize(resolved, answers)
        if not finalized.ok:
            result.violations = finalized.messages()
            for message in result.violations:
                print_error(message)
            return result
        result.final_config = finalized.config
        self._print_config(finalized.config)

        if self._validation_key(finalized.config.values) != checked:
            print_stage_header("validate", "Validate completed configuration")
            self._validate(result, finalized.config.values)

        if result.hard_errors or (self.settings.strict and result.warnings):
            if self.settings.strict and result.warnings:
                print_error("Warnings are fatal in strict mode; nothing was generated.")
            return result

        if dry_run:
            print_warning("Dry run: no files were written.")
            result.success = True
            return result

        print_stage_header("generate", "Generate project")
        generator = self.generator or ProjectGenerator(self._renderer())
        project = await generator.generate(finalized.config, base_dir=self.cwd)
        result.project_path = project.root
        result.success = True
        print_success(f"Generated {len(project.files)} file(s) in {project.root}")
        return result

    # -- Stages ---------------------------------------------------------------

    def check_compatibility(
        self, values: Mapping[str, Any]
    ) -> tuple[Optional[ValidationResult], list[InstanceRecommendation]]:
        """Compare the serving framework's accelerator with the instance's.

        Returns ``(None, [])`` when the server or instance type is not known
        yet; the check needs both.
        """
        server = values.get("model_server")
        instance_type = values.get("instance_type")
        if not server or not instance_type:
            return None, []

        selected = select_framework_version(self.frameworks, server, values.get("server_version"))
        if selected is None:
            return ValidationResult.unchecked(
                f"No registry entry for model server '{server}'; skipping accelerator validation."
            ), []
        _, entry = selected
        requirement = requirement_for(entry, server)
        if requirement.family == "cpu":
            # CPU serving stacks run on accelerated instances too.
            return ValidationResult.ok("CPU-based inference (no accelerator version requirements)"), []

        instance_entry = self.instances.get(instance_type)
        if instance_entry is None:
            return ValidationResult.unchecked(
                f"Instance type {instance_type} is not in the accelerator mapping; "
                "skipping accelerator validation."
            ), []

        outcome = self.compatibility_validator.check_compatibility(requirement, capability_for(instance_entry))
        recommendations: list[InstanceRecommendation] = []
        if not outcome.compatible:
            recommendations = self.compatibility_validator.get_recommended_instance_types(
                requirement, capability_map(self.instances)
            )
        return outcome, recommendations

    def validate_env_vars(self, values: Mapping[str, Any]) -> Optional[EnvVarValidationResult]:
        """Check the variables the image will run with against the entry's known flags.

        That is the finalized ``runtime_env`` when present, otherwise the
        entry defaults layered with the selected profile and overrides.
        """
        server = values.get("model_server")
        if not server:
            return None
        selected = select_framework_version(self.frameworks, server, values.get("server_version"))
        if selected is None:
            return None
        version, entry = selected
        env_map = values.get("runtime_env")
        if env_map is None:
            env_map = runtime_env_for(entry, values.get("framework_profile"), values.get("env_overrides"))
        return self.env_validator.validate(
            env_map,
            framework_spec_for(server, version, entry),
            EnvVarValidationOptions(enabled=bool(values.get("validate_env_vars"))),
        )

    def _validate(self, result: RunResult, values: Mapping[str, Any]) -> None:
        result.compatibility, result.recommendations = self.check_compatibility(values)
        result.env_validation = self.validate_env_vars(values)
        self._report_validation(result)

    def _validation_key(self, values: Mapping[str, Any]) -> tuple[Any, ...]:
        server = values.get("model_server")
        version = values.get("server_version")
        if server:
            selected = select_framework_version(self.frameworks, server, version)
            if selected is not None:
                version = selected[0]
        return (version, *(values.get(name) for name in _VALIDATION_INPUTS))

    # -- Reporting ------------------------------------------------------------

    def _report_validation(self, result: RunResult) -> None:
        compat = result.compatibility
        if compat is not None:
            if compat.error:
                print_error(compat.error)
            elif compat.warning:
                print_warning(compat.warning)
            elif compat.info:
                print_success(compat.info)

        if result.recommendations:
            table = Table(title="Compatible instance types", header_style="bold cyan")
            table.add_column("Instance type")
            table.add_column("Family")
            table.add_column("Versions")
            for rec in result.recommendations:
                table.add_row(rec.instance_type, rec.family, ", ".join(rec.available_versions) or "-")
            console.print(table)

        if result.env_validation is not None:
            for finding in result.env_validation.errors:
                print_error(finding.message)
            for finding in result.env_validation.warnings:
                print_warning(finding.message)

    def _print_config(self, config: FinalConfiguration) -> None:
        rows = {}
        for name, value in config.values.items():
            if value is None:
                continue
            shown = "****" if name in _MASKED else value
            rows[name] = f"{shown}  [dim]({config.provenance.get(name, '?')})[/dim]"
        print_summary_table(rows, title="Final configuration")

    def _renderer(self) -> TemplateRenderer:
        return TemplateRenderer(self.settings.template_dir)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def build_parser(matrix: Optional[ParameterMatrix] = None) -> argparse.ArgumentParser:
    """Argument parser with one option per matrix parameter that has a flag."""
    matrix = matrix or build_default_matrix()
    parser = argparse.ArgumentParser(
        prog="containercraft",
        description="Scaffold a bring-your-own-container model serving project.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  containercraft my-api --framework sklearn --model-server flask --skip-prompts\n"
            "  containercraft --config containercraft.yaml --dry-run\n"
        ),
    )
    parser.add_argument("project_name_arg", nargs="?", metavar="project_name", help="Project name")

    for spec in matrix:
        if not spec.cli_option:
            continue
        flag = f"--{spec.cli_option}"
        if spec.name == "skip_prompts":
            parser.add_argument(flag, action="store_true", default=None, help="Never prompt")
        elif spec.value_type is ParamType.BOOLEAN:
            parser.add_argument(
                flag, action=argparse.BooleanOptionalAction, default=None, help=spec.description or None
            )
        else:
            parser.add_argument(flag, default=None, help=spec.description or None)

    parser.add_argument("--dry-run", action="store_true", help="Resolve and validate without writing files")
    parser.add_argument("--strict", action="store_true", help="Treat warnings as fatal")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for ``containercraft`` / ``python -m containercraft.pipeline``."""
    matrix = build_default_matrix()
    args = build_parser(matrix).parse_args(argv)
    configure_logging(args.verbose)

    settings = Settings.from_env()
    if args.strict:
        settings = settings.model_copy(update={"strict": True})

    options = {
        key: value
        for key, value in vars(args).items()
        if key not in {"project_name_arg", "dry_run", "strict", "verbose"}
    }
    positional = [args.project_name_arg] if args.project_name_arg else []

    try:
        run = GenerationRun(settings=settings, matrix=matrix, env=dict(os.environ), cwd=Path.cwd())
        result = asyncio.run(run.run(options, positional, dry_run=args.dry_run))
    except (ConfigurationError, StructuralError, RegistryError, TemplateError) as exc:
        console.print(Panel(str(exc), title="[bold red]Error[/bold red]", border_style="bold red"))
        sys.exit(1)

    if not result.success:
        print_error("Generation failed.")
        sys.exit(1)


if __name__ == "__main__":
    main()
