"""Render the project tree for a final configuration."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from containercraft.resolution.models import FinalConfiguration

from .manager import TemplateManager
from .templates import TemplateRenderer

logger = logging.getLogger(__name__)


@dataclass
class GeneratedProject:
    """Where a project was written and which files it got."""

    root: Path
    files: list[Path] = field(default_factory=list)

    def relative_files(self) -> list[str]:
        return [p.relative_to(self.root).as_posix() for p in self.files]


class ProjectGenerator:
    """Writes a project from the templates.

    Only :class:`FinalConfiguration` is read; the template context is a deep
    copy of its values, so templates cannot affect the configuration.
    """

    def __init__(self, renderer: Optional[TemplateRenderer] = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    async def generate(self, config: FinalConfiguration, base_dir: str | Path = ".") -> GeneratedProject:
        """Render every applicable template into the destination directory.

        Args:
            config: The finalized configuration.
            base_dir: Directory a relative ``destination_dir`` is resolved
                against, normally the working directory.

        Raises:
            TemplateError: If the configuration cannot be served by the
                templates.
        """
        manager = TemplateManager(config)
        manager.validate()

        root = Path(config.get("destination_dir") or ".")
        if not root.is_absolute():
            root = Path(base_dir) / root
        await asyncio.to_thread(root.mkdir, parents=True, exist_ok=True)

        files = await self.renderer.render_tree(
            root, config.template_context(), skip=manager.is_ignored
        )
        logger.debug("Rendered %d file(s) into %s", len(files), root)
        return GeneratedProject(root=root, files=files)
