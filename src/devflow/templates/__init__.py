"""Reusable code templates and their injection engine."""

from .models import InjectionResult, Template, TemplateFile, TemplateVariable
from .manager import TemplateManager, render

__all__ = [
    "InjectionResult",
    "Template",
    "TemplateFile",
    "TemplateVariable",
    "TemplateManager",
    "render",
]
