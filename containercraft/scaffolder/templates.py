"""Jinja2 rendering of the project templates.

Templates live under ``containercraft/scaffolder/templates/`` as ``.j2``
files laid out exactly like the generated project.  The renderer only knows
how to render; which files to render is decided by ``TemplateManager``.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any, Callable, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

TEMPLATE_SUFFIX = ".j2"


class TemplateRenderer:
    """Renders ``.j2`` templates from a template directory.

    Undefined variables raise instead of rendering as empty strings, so a
    template can only use values the final configuration actually carries.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir) if template_dir is not None else _DEFAULT_TEMPLATE_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["slugify"] = _slugify_filter
        self.env.filters["snake_case"] = _snake_case_filter

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template (path relative to the template root)."""
        template = self.env.get_template(template_path)
        return template.render(**context)

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        template = self.env.from_string(template_string)
        return template.render(**context)

    async def render_to_file(self, template_path: str, output_path: str | Path, context: dict[str, Any]) -> Path:
        """Render a template and write it to *output_path*, creating parents."""
        content = self.render(template_path, context)
        out = Path(output_path)
        await asyncio.to_thread(_write_file, out, content)
        return out

    async def render_tree(
        self,
        output_dir: str | Path,
        context: dict[str, Any],
        *,
        skip: Optional[Callable[[str], bool]] = None,
    ) -> list[Path]:
        """Render every template into *output_dir*, preserving the layout.

        Args:
            output_dir: Root of the generated project.
            context: Template variables.
            skip: Called with each output path relative to the root
                (``"deploy/deploy.sh"``); templates it accepts are skipped.

        Returns:
            Written file paths, in sorted template order.
        """
        written: list[Path] = []
        out_base = Path(output_dir)
        for template_key in self.list_templates():
            relative = template_key[: -len(TEMPLATE_SUFFIX)]
            if skip is not None and skip(relative):
                continue
            path = await self.render_to_file(template_key, out_base / relative, context)
            if _is_script(path):
                await asyncio.to_thread(path.chmod, 0o755)
            written.append(path)
        return written

    def list_templates(self) -> list[str]:
        """All template paths relative to the template root, POSIX style, sorted."""
        if not self.template_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.template_dir).as_posix()
            for p in self.template_dir.rglob(f"*{TEMPLATE_SUFFIX}")
        )


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _slugify_filter(value: str) -> str:
    """Convert a string to an image/repository-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", str(value).lower().strip())
    return slug.strip("-")


def _snake_case_filter(value: str) -> str:
    """``my-model-api`` -> ``my_model_api``."""
    return re.sub(r"[^a-z0-9]+", "_", str(value).lower()).strip("_")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _is_script(path: Path) -> bool:
    return path.suffix == ".sh" or path.name == "serve"


def _write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
