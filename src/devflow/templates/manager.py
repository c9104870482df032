"""Template catalog and injection engine."""

from __future__ import annotations

import json
import logging
import re
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from ..local.session import LocalSession
from ..paths import TEMPLATES_MANIFEST_NAME
from .models import InjectionResult, Template, TemplateFile

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{([A-Za-z0-9_.-]+)\}\}")


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render(text: str, variables: Mapping[str, Any]) -> str:
    """Replace every ``{{name}}`` whose name is in `variables`.

    Unknown placeholders are left as they are.
    """

    def substitute(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in variables:
            return _stringify(variables[name])
        return match.group(0)

    return PLACEHOLDER.sub(substitute, text)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class TemplateManager:
    """
    Loads the template catalog and injects templates into project trees.

    The catalog is read once from ``<templates_dir>/templates.json``; source
    files for a template live under ``<templates_dir>/<template_id>/``.
    """

    def __init__(
        self,
        templates_dir: Union[str, Path],
        session: Optional[LocalSession] = None,
        *,
        run_scripts: bool = True,
    ) -> None:
        self.templates_dir = Path(templates_dir)
        self.manifest_path = self.templates_dir / TEMPLATES_MANIFEST_NAME
        self.session = session or LocalSession()
        self.run_scripts = run_scripts
        self._lock = threading.Lock()
        self._templates: Dict[str, Template] = self._load_templates()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def _load_templates(self) -> Dict[str, Template]:
        templates: Dict[str, Template] = {}
        if not self.manifest_path.is_file():
            return templates
        try:
            data = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Error loading templates from %s: %s", self.manifest_path, exc)
            return templates

        for raw in data.get("templates", []):
            try:
                template = Template.from_dict(raw)
            except (ValueError, TypeError) as exc:
                logger.warning("Skipping invalid template definition: %s", exc)
                continue
            templates[template.id] = template
        logger.debug("Loaded %d templates from %s", len(templates), self.manifest_path)
        return templates

    def _save_templates(self) -> None:
        payload = {
            "templates": [t.to_dict() for t in self._templates.values()],
            "updatedAt": datetime.now().isoformat(),
        }
        self.templates_dir.mkdir(parents=True, exist_ok=True)
        self.manifest_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def list_templates(self) -> List[Template]:
        with self._lock:
            return list(self._templates.values())

    def get_template(self, template_id: str) -> Optional[Template]:
        with self._lock:
            return self._templates.get(template_id)

    def get_templates_by_category(self, category: str) -> List[Template]:
        return [t for t in self.list_templates() if t.category == category]

    def create_template(self, template: Union[Template, Dict[str, Any]]) -> Template:
        """Add or replace a template and persist the whole catalog."""
        if not isinstance(template, Template):
            template = Template.from_dict(template)
        with self._lock:
            self._templates[template.id] = template
            self._save_templates()
        logger.info("Saved template %s", template.id)
        return template

    # ------------------------------------------------------------------
    # Injection
    # ------------------------------------------------------------------

    def inject_template(
        self,
        template_id: str,
        target_path: Union[str, Path],
        variables: Optional[Mapping[str, Any]] = None,
    ) -> InjectionResult:
        result = InjectionResult()

        template = self.get_template(template_id)
        if template is None:
            result.errors.append(f"Template not found: {template_id}")
            return result

        values = self._resolve_variables(template, variables or {})
        validation_errors = self.validate_variables(template, values)
        if validation_errors:
            result.errors.extend(validation_errors)
            return result

        target_root = Path(target_path).resolve()
        for template_file in template.files:
            injected = self._inject_file(template.id, template_file, target_root, values)
            if injected is None:
                result.errors.append(f"Failed to inject file: {template_file.source or template_file.target}")
            else:
                result.injected_paths.append(injected)

        if template.dependencies:
            installed, dependency_errors = self._merge_dependencies(target_root, template.dependencies)
            result.installed_dependencies = installed
            result.errors.extend(dependency_errors)

        if template.install_scripts and self.run_scripts:
            for script in template.install_scripts:
                self._run_install_script(target_root, script, values)

        result.succeeded = not result.errors
        logger.info(
            "Injected template %s into %s: %d paths, %d dependencies, %d errors",
            template.id,
            target_root,
            len(result.injected_paths),
            len(result.installed_dependencies),
            len(result.errors),
        )
        return result

    @staticmethod
    def _resolve_variables(template: Template, supplied: Mapping[str, Any]) -> Dict[str, Any]:
        values = dict(supplied)
        for variable in template.variables:
            if _is_blank(values.get(variable.name)) and variable.default_value is not None:
                values[variable.name] = variable.default_value
        return values

    @staticmethod
    def validate_variables(template: Template, values: Mapping[str, Any]) -> List[str]:
        errors: List[str] = []
        for variable in template.variables:
            value = values.get(variable.name)
            if _is_blank(value):
                if variable.required:
                    errors.append(f"Required variable missing: {variable.name}")
                continue
            if variable.type == "select" and variable.options:
                options = [_stringify(o) for o in variable.options]
                if _stringify(value) not in options:
                    errors.append(
                        f"Invalid value for {variable.name}. Must be one of: {', '.join(options)}"
                    )
        return errors

    def _inject_file(
        self,
        template_id: str,
        template_file: TemplateFile,
        target_root: Path,
        values: Mapping[str, Any],
    ) -> Optional[str]:
        destination = (target_root / render(template_file.target, values)).resolve()
        if destination != target_root and not destination.is_relative_to(target_root):
            logger.error("Template target escapes %s: %s", target_root, template_file.target)
            return None

        try:
            if template_file.kind == "directory":
                destination.mkdir(parents=True, exist_ok=True)
                return str(destination)

            source = self.templates_dir / template_id / template_file.source
            if not source.is_file():
                logger.error("Template source not found: %s", source)
                return None

            content = render(source.read_text(encoding="utf-8"), values)
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(content, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Error injecting %s: %s", template_file.source, exc)
            return None
        return str(destination)

    @staticmethod
    def _merge_dependencies(target_root: Path, dependencies: List[str]) -> tuple[List[str], List[str]]:
        installed: List[str] = []
        manifest = target_root / "package.json"
        if not manifest.is_file():
            logger.warning("No package.json in %s; skipping dependency merge", target_root)
            return installed, []

        try:
            package = json.loads(manifest.read_text(encoding="utf-8"))
            if not isinstance(package, dict):
                raise ValueError("package.json must contain an object")
            if package.get("dependencies") is None:
                package["dependencies"] = {}
            declared = package["dependencies"]
            dev_declared = package.get("devDependencies") or {}
            if not isinstance(declared, dict) or not isinstance(dev_declared, dict):
                raise ValueError("dependencies and devDependencies must be objects")
            for name in dependencies:
                if name not in declared and name not in dev_declared:
                    declared[name] = "latest"
                    installed.append(name)
            if installed:
                manifest.write_text(json.dumps(package, indent=2) + "\n", encoding="utf-8")
        except (OSError, ValueError, AttributeError) as exc:
            return [], [f"Failed to install dependencies: {exc}"]
        return installed, []

    def _run_install_script(self, target_root: Path, script: str, values: Mapping[str, Any]) -> None:
        resolved = render(script, values)
        logger.info("   Running install script: %s", resolved)
        outcome = self.session.run(resolved, cwd=str(target_root))
        if not outcome.succeeded:
            logger.warning("   Install script failed (%s): %s", outcome.exit_status, outcome.error)
