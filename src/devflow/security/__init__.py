"""Security scanning for project directories."""

from .scanner import ScanResult, ScanSummary, SecurityScanner, Vulnerability, generate_security_report

__all__ = ["ScanResult", "ScanSummary", "SecurityScanner", "Vulnerability", "generate_security_report"]
