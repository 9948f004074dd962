"""The parameter matrix: which sources may set what, and with which rules.

The matrix is built once per process by :func:`build_default_matrix` and is
read-only afterwards.  Every parameter the tool understands has exactly one
``ParameterSpec`` here; a name that is not in the matrix is ignored by every
source.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Optional

from .models import (
    CONFIG_DOCUMENTS,
    ParamType,
    ParameterSpec,
    Source,
    StructuralError,
)


# ---------------------------------------------------------------------------
# Supported options
# ---------------------------------------------------------------------------

SUPPORTED_FRAMEWORKS: tuple[str, ...] = ("sklearn", "xgboost", "tensorflow", "transformers")

MODEL_SERVERS: dict[str, tuple[str, ...]] = {
    "sklearn": ("flask", "fastapi"),
    "xgboost": ("flask", "fastapi"),
    "tensorflow": ("flask", "fastapi"),
    "transformers": ("vllm", "sglang"),
}

MODEL_FORMATS: dict[str, tuple[str, ...]] = {
    "sklearn": ("pkl", "joblib"),
    "xgboost": ("json", "model", "ubj"),
    "tensorflow": ("keras", "h5", "SavedModel"),
    "transformers": (),
}

DEPLOY_TARGETS: tuple[str, ...] = ("sagemaker", "codebuild")

CODEBUILD_COMPUTE_TYPES: tuple[str, ...] = (
    "BUILD_GENERAL1_SMALL",
    "BUILD_GENERAL1_MEDIUM",
    "BUILD_GENERAL1_LARGE",
)

AWS_REGIONS: tuple[str, ...] = (
    "us-east-1", "us-east-2", "us-west-1", "us-west-2",
    "eu-west-1", "eu-west-2", "eu-central-1", "eu-north-1",
    "ap-southeast-1", "ap-southeast-2", "ap-northeast-1",
    "ca-central-1", "sa-east-1",
)

#: Instance families without any accelerator.
CPU_INSTANCE_FAMILIES: frozenset[str] = frozenset({
    "t2", "t3", "m4", "m5", "m5d", "m6i", "m7i", "c4", "c5", "c5d", "c6i", "c7i", "r5", "r6i",
})

# Values inferred from the framework when a required parameter is missing.
DEFAULT_MODEL_SERVER: dict[str, str] = {"transformers": "vllm"}
DEFAULT_MODEL_FORMAT: dict[str, str] = {"sklearn": "pkl", "xgboost": "json", "tensorflow": "keras"}
DEFAULT_INSTANCE_TYPE: dict[str, str] = {"transformers": "ml.g5.xlarge"}
FALLBACK_FRAMEWORK = "sklearn"
FALLBACK_MODEL_SERVER = "flask"
FALLBACK_INSTANCE_TYPE = "ml.m5.xlarge"

_INSTANCE_TYPE = re.compile(r"^ml\.([a-z0-9]+)\.([a-z0-9]+)$")
_ROLE_ARN = re.compile(r"^arn:aws:iam::\d{12}:role/[\w+=,.@-]+$")
_CODEBUILD_PROJECT = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{1,254}$")


def needs_model_format(values: Mapping[str, Any]) -> bool:
    """Transformer servers load weights by model id, not from a file format."""
    return values.get("framework") != "transformers"


def instance_family(instance_type: str) -> Optional[str]:
    """``"ml.g5.xlarge"`` -> ``"g5"``; ``None`` when the shape is wrong."""
    match = _INSTANCE_TYPE.match(instance_type or "")
    return match.group(1) if match else None


# ---------------------------------------------------------------------------
# Value validators
# ---------------------------------------------------------------------------

def _one_of(label: str, value: Any, allowed: Iterable[str]) -> list[str]:
    allowed = list(allowed)
    if value in allowed:
        return []
    return [f"Unsupported {label}: {value}. Supported: {', '.join(allowed)}"]


def validate_framework(value: Any, context: Mapping[str, Any]) -> list[str]:
    return _one_of("framework", value, SUPPORTED_FRAMEWORKS)


def validate_model_server(value: Any, context: Mapping[str, Any]) -> list[str]:
    framework = context.get("framework")
    if framework not in MODEL_SERVERS:
        return []
    servers = MODEL_SERVERS[framework]
    if value in servers:
        return []
    return [
        f"Model server '{value}' is not compatible with framework '{framework}'. "
        f"Compatible servers: {', '.join(servers)}"
    ]


def validate_model_format(value: Any, context: Mapping[str, Any]) -> list[str]:
    framework = context.get("framework")
    formats = MODEL_FORMATS.get(framework, ())
    if not formats or value in formats:
        return []
    return [
        f"Model format '{value}' is not compatible with framework '{framework}'. "
        f"Compatible formats: {', '.join(formats)}"
    ]


def validate_instance_type(value: Any, context: Mapping[str, Any]) -> list[str]:
    family = instance_family(str(value))
    if family is None:
        return [f"Invalid instance type: {value}. Expected a name like ml.g5.xlarge"]
    if context.get("framework") == "transformers" and family in CPU_INSTANCE_FAMILIES:
        return [
            f"Framework 'transformers' requires an accelerated instance; "
            f"{value} is CPU-only."
        ]
    return []


def validate_region(value: Any, context: Mapping[str, Any]) -> list[str]:
    return _one_of("AWS region", value, AWS_REGIONS)


def validate_role_arn(value: Any, context: Mapping[str, Any]) -> list[str]:
    if not _ROLE_ARN.match(str(value)):
        raise StructuralError(
            "aws_role_arn",
            value,
            f"Invalid AWS Role ARN format: {value}. "
            "Expected format: arn:aws:iam::123456789012:role/RoleName",
        )
    return []


def validate_deploy_target(value: Any, context: Mapping[str, Any]) -> list[str]:
    return _one_of("deployment target", value, DEPLOY_TARGETS)


def validate_compute_type(value: Any, context: Mapping[str, Any]) -> list[str]:
    return _one_of("CodeBuild compute type", value, CODEBUILD_COMPUTE_TYPES)


def validate_codebuild_project_name(value: Any, context: Mapping[str, Any]) -> list[str]:
    if _CODEBUILD_PROJECT.match(str(value)):
        return []
    return [
        f"Invalid CodeBuild project name: {value}. Project names must be 2-255 characters, "
        "start with a letter or number, and contain only letters, numbers, hyphens, "
        "and underscores."
    ]


# ---------------------------------------------------------------------------
# ParameterMatrix
# ---------------------------------------------------------------------------

class ParameterMatrix:
    """Ordered, read-only collection of ``ParameterSpec`` entries."""

    def __init__(self, specs: Iterable[ParameterSpec]) -> None:
        ordered: dict[str, ParameterSpec] = {}
        for spec in specs:
            if spec.name in ordered:
                raise ValueError(f"Duplicate parameter spec: {spec.name}")
            ordered[spec.name] = spec
        self._specs = MappingProxyType(ordered)

    def __iter__(self) -> Iterator[ParameterSpec]:
        return iter(self._specs.values())

    def __getitem__(self, name: str) -> ParameterSpec:
        return self._specs[name]

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def get(self, name: str) -> Optional[ParameterSpec]:
        return self._specs.get(name)

    def names(self) -> list[str]:
        return list(self._specs)

    def env_var_names(self) -> dict[str, str]:
        """``{ENV_VAR: parameter}`` for every parameter with an env mapping."""
        return {spec.env_var: spec.name for spec in self if spec.env_var}

    def cli_options(self) -> dict[str, str]:
        """``{cli-option: parameter}`` for every parameter with a flag."""
        return {spec.cli_option: spec.name for spec in self if spec.cli_option}

    def required_promptable(self) -> list[ParameterSpec]:
        return [spec for spec in self if spec.required and spec.promptable]


def _sources(*extra: Source, docs: bool = True) -> frozenset[Source]:
    allowed = set(extra)
    if docs:
        allowed |= CONFIG_DOCUMENTS
    return frozenset(allowed)


def build_default_matrix() -> ParameterMatrix:
    """The parameter matrix used by the CLI."""
    cli = Source.CLI_OPTION
    env = Source.ENV_VAR
    section = Source.PROJECT_SECTION
    return ParameterMatrix([
        ParameterSpec(
            name="framework",
            allowed_sources=_sources(cli),
            cli_option="framework",
            required=True,
            promptable=True,
            auto_generate=True,
            validator=validate_framework,
            description="ML framework the model was trained with",
        ),
        ParameterSpec(
            name="model_server",
            allowed_sources=_sources(cli),
            cli_option="model-server",
            required=True,
            promptable=True,
            auto_generate=True,
            validator=validate_model_server,
            description="Serving stack inside the container",
        ),
        ParameterSpec(
            name="model_format",
            allowed_sources=_sources(cli),
            cli_option="model-format",
            required=True,
            required_when=needs_model_format,
            promptable=True,
            auto_generate=True,
            validator=validate_model_format,
            description="Serialized model format",
        ),
        ParameterSpec(
            name="model_name",
            allowed_sources=_sources(cli),
            cli_option="model-name",
            default="openai/gpt-oss-20b",
            promptable=True,
            description="Hugging Face model id for transformer servers",
        ),
        ParameterSpec(
            name="server_version",
            allowed_sources=_sources(cli),
            cli_option="server-version",
            description="Serving framework version; latest registered when omitted",
        ),
        ParameterSpec(
            name="framework_profile",
            allowed_sources=_sources(cli, env),
            cli_option="framework-profile",
            env_var="ML_FRAMEWORK_PROFILE",
            description="Named runtime profile of the serving framework",
        ),
        ParameterSpec(
            name="env_overrides",
            allowed_sources=_sources(),
            value_type=ParamType.MAPPING,
            description="Runtime environment variables baked into the image",
        ),
        ParameterSpec(
            name="include_sample_model",
            allowed_sources=_sources(cli),
            cli_option="include-sample",
            default=False,
            required=True,
            promptable=True,
            value_type=ParamType.BOOLEAN,
            description="Ship a sample training script and model",
        ),
        ParameterSpec(
            name="include_testing",
            allowed_sources=_sources(cli),
            cli_option="include-testing",
            default=True,
            required=True,
            promptable=True,
            value_type=ParamType.BOOLEAN,
            description="Ship local and endpoint test scripts",
        ),
        ParameterSpec(
            name="instance_type",
            allowed_sources=_sources(cli, env),
            cli_option="instance-type",
            env_var="ML_INSTANCE_TYPE",
            required=True,
            promptable=True,
            auto_generate=True,
            validator=validate_instance_type,
            description="Instance type the endpoint is deployed on",
        ),
        ParameterSpec(
            name="aws_region",
            allowed_sources=_sources(cli, env, section),
            cli_option="region",
            env_var="AWS_REGION",
            default="us-east-1",
            promptable=True,
            validator=validate_region,
        ),
        ParameterSpec(
            name="aws_role_arn",
            allowed_sources=_sources(cli, env, section),
            cli_option="role-arn",
            env_var="AWS_ROLE",
            promptable=True,
            validator=validate_role_arn,
            description="IAM role the endpoint assumes",
        ),
        ParameterSpec(
            name="hf_token",
            allowed_sources=_sources(cli, env),
            cli_option="hf-token",
            env_var="HF_TOKEN",
            description="Hugging Face token; use $NAME to read it from the environment",
        ),
        ParameterSpec(
            name="config_file",
            allowed_sources=frozenset({cli, env}),
            cli_option="config",
            env_var="CONTAINERCRAFT_CONFIG",
        ),
        ParameterSpec(
            name="skip_prompts",
            allowed_sources=frozenset({cli}),
            cli_option="skip-prompts",
            default=False,
            value_type=ParamType.BOOLEAN,
        ),
        ParameterSpec(
            name="validate_env_vars",
            allowed_sources=_sources(cli),
            cli_option="validate-env-vars",
            default=True,
            value_type=ParamType.BOOLEAN,
        ),
        ParameterSpec(
            name="project_name",
            allowed_sources=_sources(cli, Source.CLI_ARGUMENT, section),
            cli_option="project-name",
            required=True,
            auto_generate=True,
        ),
        ParameterSpec(
            name="destination_dir",
            allowed_sources=_sources(cli, section),
            cli_option="project-dir",
            default=".",
            required=True,
        ),
        ParameterSpec(
            name="deploy_target",
            allowed_sources=_sources(cli, env),
            cli_option="deploy-target",
            env_var="ML_DEPLOY_TARGET",
            default="sagemaker",
            required=True,
            promptable=True,
            validator=validate_deploy_target,
        ),
        ParameterSpec(
            name="codebuild_compute_type",
            allowed_sources=_sources(cli, env),
            cli_option="codebuild-compute-type",
            env_var="ML_CODEBUILD_COMPUTE_TYPE",
            default="BUILD_GENERAL1_MEDIUM",
            promptable=True,
            validator=validate_compute_type,
        ),
        ParameterSpec(
            name="codebuild_project_name",
            allowed_sources=_sources(),
            validator=validate_codebuild_project_name,
        ),
        # Filled from the framework registry by the finalizer.
        ParameterSpec(name="base_image", allowed_sources=frozenset()),
        ParameterSpec(name="runtime_env", allowed_sources=frozenset(), value_type=ParamType.MAPPING),
    ])
