"""ContainerCraft tool settings.

These are settings of the tool itself (where registries and templates live,
which documents count as configuration), not the parameters of the project
being generated; those are resolved by :mod:`containercraft.resolution`.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field

PACKAGE_DIR = Path(__file__).resolve().parent

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Where ContainerCraft looks for its inputs.

    Instances are created once by the CLI entry point (usually through
    :meth:`from_env`) and passed to ``GenerationRun``.
    """

    local_config_names: list[str] = Field(
        default=["containercraft.config.json", "containercraft.config.yaml"],
        description="Conventional config documents looked up in the working directory, in order",
    )
    descriptor_name: str = Field(default="pyproject.toml")
    section_name: str = Field(default="containercraft", description="Table under [tool.*] in the descriptor")
    registry_dir: Path = Field(default=PACKAGE_DIR / "registries")
    template_dir: Path = Field(default=PACKAGE_DIR / "scaffolder" / "templates")
    strict: bool = Field(default=False, description="Treat compatibility warnings as fatal")

    @property
    def frameworks_path(self) -> Path:
        """Path to the serving framework registry."""
        return self.registry_dir / "frameworks.yaml"

    @property
    def instances_path(self) -> Path:
        """Path to the instance accelerator mapping."""
        return self.registry_dir / "instances.yaml"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            CONTAINERCRAFT_REGISTRY_DIR, CONTAINERCRAFT_TEMPLATE_DIR,
            CONTAINERCRAFT_STRICT.
        """
        kwargs: dict[str, object] = {}
        if os.environ.get("CONTAINERCRAFT_REGISTRY_DIR"):
            kwargs["registry_dir"] = Path(os.environ["CONTAINERCRAFT_REGISTRY_DIR"])
        if os.environ.get("CONTAINERCRAFT_TEMPLATE_DIR"):
            kwargs["template_dir"] = Path(os.environ["CONTAINERCRAFT_TEMPLATE_DIR"])
        if os.environ.get("CONTAINERCRAFT_STRICT"):
            kwargs["strict"] = os.environ["CONTAINERCRAFT_STRICT"].strip().lower() in _TRUTHY
        return cls(**kwargs)
