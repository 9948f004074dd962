"""Template stage: turns a final configuration into a project tree."""

from containercraft.scaffolder.generator import GeneratedProject, ProjectGenerator
from containercraft.scaffolder.manager import TemplateError, TemplateManager
from containercraft.scaffolder.templates import TemplateRenderer

__all__ = [
    "GeneratedProject",
    "ProjectGenerator",
    "TemplateError",
    "TemplateManager",
    "TemplateRenderer",
]
