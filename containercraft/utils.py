"""Shared helpers: console output, logging setup and document loading."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.rule import Rule
from rich.table import Table

console = Console()

YAML_SUFFIXES = {".yaml", ".yml"}


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def configure_logging(verbose: bool = False) -> None:
    """Route ``logging`` through Rich; DEBUG when *verbose*, else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------


def sanitize_name(name: str) -> str:
    """Convert an arbitrary name to a safe directory name.

    Examples::

        sanitize_name("My Model API") -> "my-model-api"
        sanitize_name("  llm (v2)  ") -> "llm-v2"
    """
    result = re.sub(r"[^a-zA-Z0-9_-]", "-", name.strip().lower())
    result = re.sub(r"-+", "-", result)
    return result.strip("-")


# ---------------------------------------------------------------------------
# Document I/O
# ---------------------------------------------------------------------------


def load_document(path: str | Path) -> dict[str, Any]:
    """Load a JSON or YAML mapping, picking the parser by file suffix.

    An empty YAML document loads as ``{}``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the content cannot be parsed or is not a mapping.
    """
    file_path = Path(path)
    raw = file_path.read_text(encoding="utf-8")
    try:
        if file_path.suffix.lower() in YAML_SUFFIXES:
            data = yaml.safe_load(raw)
            if data is None:
                data = {}
        else:
            data = json.loads(raw)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {file_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {file_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at the top of {file_path}, got {type(data).__name__}")
    return data


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


STAGE_COLORS: dict[str, str] = {
    "resolve": "bright_cyan",
    "validate": "bright_magenta",
    "prompt": "bright_yellow",
    "generate": "bright_green",
}


def print_stage_header(stage: str, title: str) -> None:
    """Print a full-width rule announcing a pipeline stage."""
    color = STAGE_COLORS.get(stage, "white")
    console.print()
    console.print(Rule(f"[bold {color}] {title} [/bold {color}]", style=color))
    console.print()


def print_summary_table(data: dict[str, Any], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")


def print_info(message: str) -> None:
    console.print(f"[cyan]{message}[/cyan]")
