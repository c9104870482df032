"""Project security scanner: npm audit plus a few file heuristics."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..local.session import LocalSession

logger = logging.getLogger(__name__)

SEVERITIES = ("critical", "high", "medium", "low")
ENV_FILES = (".env", ".env.local", ".env.development")
SENSITIVE_MARKERS = ("SECRET", "PASSWORD", "KEY")


@dataclass
class Vulnerability:
    severity: str
    package: str
    version: str
    advisory: str
    path: str
    recommendation: str


@dataclass
class ScanSummary:
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    @classmethod
    def of(cls, vulnerabilities: List[Vulnerability]) -> "ScanSummary":
        summary = cls(total=len(vulnerabilities))
        for vuln in vulnerabilities:
            if vuln.severity in SEVERITIES:
                setattr(summary, vuln.severity, getattr(summary, vuln.severity) + 1)
        return summary


@dataclass
class ScanResult:
    vulnerabilities: List[Vulnerability] = field(default_factory=list)
    summary: ScanSummary = field(default_factory=ScanSummary)

    @property
    def passed(self) -> bool:
        return self.summary.critical == 0 and self.summary.high == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vulnerabilities": [asdict(v) for v in self.vulnerabilities],
            "summary": asdict(self.summary),
            "passed": self.passed,
        }


class SecurityScanner:
    """Collects vulnerabilities for a project directory."""

    def __init__(self, session: Optional[LocalSession] = None, package_manager: str = "npm") -> None:
        self.session = session or LocalSession()
        self.package_manager = package_manager

    def scan(self, project_path: str) -> ScanResult:
        root = Path(project_path)
        vulnerabilities = self._run_audit(root)
        vulnerabilities.extend(self._check_env_files(root))
        vulnerabilities.extend(self._check_scripts(root))
        result = ScanResult(vulnerabilities=vulnerabilities, summary=ScanSummary.of(vulnerabilities))
        logger.info(
            "Security scan of %s: %d findings (critical=%d, high=%d)",
            root, result.summary.total, result.summary.critical, result.summary.high,
        )
        return result

    def _run_audit(self, root: Path) -> List[Vulnerability]:
        outcome = self.session.run(self.package_manager, ["audit", "--json"], cwd=str(root))
        # audit exits non-zero when it finds issues, so parse whatever came back
        if not outcome.output:
            if not outcome.succeeded:
                logger.warning("npm audit produced no report: %s", outcome.error)
            return []
        try:
            data = json.loads(outcome.output)
        except ValueError as exc:
            logger.warning("Could not parse npm audit output: %s", exc)
            return []
        return self.parse_audit_data(data)

    @staticmethod
    def parse_audit_data(data: Any) -> List[Vulnerability]:
        found: List[Vulnerability] = []
        if not isinstance(data, dict):
            return found
        for name, entry in (data.get("vulnerabilities") or {}).items():
            if not isinstance(entry, dict):
                continue
            via = entry.get("via") or []
            via_names = [v if isinstance(v, str) else str(v.get("name", v.get("title", ""))) for v in via]
            title = entry.get("title")
            if not title:
                title = next((v.get("title") for v in via if isinstance(v, dict) and v.get("title")), None)
            found.append(Vulnerability(
                severity=str(entry.get("severity", "low")).lower(),
                package=name,
                version=str(entry.get("version") or entry.get("range") or "unknown"),
                advisory=title or "No advisory available",
                path=", ".join(n for n in via_names if n) or "Unknown",
                recommendation=f"Run: npm update {name}" if entry.get("fixAvailable") else "No fix available",
            ))
        return found

    @staticmethod
    def _check_env_files(root: Path) -> List[Vulnerability]:
        issues: List[Vulnerability] = []
        for env_name in ENV_FILES:
            env_path = root / env_name
            if not env_path.is_file():
                continue
            try:
                content = env_path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                logger.warning("Could not read %s: %s", env_path, exc)
                continue
            if any(marker in content for marker in SENSITIVE_MARKERS):
                issues.append(Vulnerability(
                    severity="high",
                    package="Environment Configuration",
                    version="N/A",
                    advisory="Sensitive data exposed in environment file",
                    path=env_name,
                    recommendation="Move sensitive data to secure storage and add to .gitignore",
                ))
        return issues

    @staticmethod
    def _check_scripts(root: Path) -> List[Vulnerability]:
        manifest = root / "package.json"
        if not manifest.is_file():
            return []
        try:
            package = json.loads(manifest.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Could not read %s: %s", manifest, exc)
            return []

        issues: List[Vulnerability] = []
        scripts = package.get("scripts") if isinstance(package, dict) else None
        for script_name, script in (scripts or {}).items():
            if isinstance(script, str) and "--inspect" in script:
                issues.append(Vulnerability(
                    severity="medium",
                    package="Node.js Debugger",
                    version="N/A",
                    advisory="Debugger exposure in npm script",
                    path=f"scripts.{script_name}",
                    recommendation="Remove debugger flags from production scripts",
                ))
        return issues


def generate_security_report(result: ScanResult) -> str:
    summary = result.summary
    lines = [
        "# Security Scan Report",
        "",
        "## Summary",
        f"- Total Vulnerabilities: {summary.total}",
        f"- Critical: {summary.critical}",
        f"- High: {summary.high}",
        f"- Medium: {summary.medium}",
        f"- Low: {summary.low}",
        f"- Status: {'✅ PASSED' if result.passed else '❌ FAILED'}",
        "",
    ]
    if result.vulnerabilities:
        lines.extend(["## Vulnerabilities", ""])
        for vuln in result.vulnerabilities:
            lines.extend([
                f"### {vuln.package} ({vuln.severity.upper()})",
                f"- **Version**: {vuln.version}",
                f"- **Advisory**: {vuln.advisory}",
                f"- **Path**: {vuln.path}",
                f"- **Recommendation**: {vuln.recommendation}",
                "",
            ])
    return "\n".join(lines)
