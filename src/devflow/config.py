"""Configuration loading utilities for devflow."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .paths import CONFIG_FILE, DATA_DIR, TEMPLATES_DIR

# Load .env file if it exists
load_dotenv()

logger = logging.getLogger(__name__)

# Provider defaults used when the preferences document leaves model/endpoint empty
PROVIDER_DEFAULTS = {
    "openai": {
        "model": "gpt-4o",
        "endpoint": "https://api.openai.com/v1",
    },
    "deepseek": {
        "model": "deepseek-chat",
        "endpoint": "https://api.deepseek.com/v1",
    },
    "openrouter": {
        "model": "anthropic/claude-3.5-sonnet",
        "endpoint": "https://openrouter.ai/api/v1",
    },
    "openai-compatible": {
        "model": None,
        "endpoint": None,
    },
}


@dataclass
class GitHubConfig:
    """Credentials for the source-control helper."""

    token: str = ""
    username: str = ""


@dataclass
class LLMConfig:
    """Configuration for the text-generation endpoint."""

    provider: str = "openai"
    model: Optional[str] = None
    api_key: Optional[str] = None
    endpoint: Optional[str] = None
    temperature: float = 0.7
    proxy: Optional[str] = None  # e.g. "http://127.0.0.1:7890"


@dataclass
class PathsConfig:
    """Where projects, templates and persisted data live."""

    projects_dir: str = "projects"
    templates_dir: str = str(TEMPLATES_DIR)
    data_dir: str = str(DATA_DIR)


@dataclass
class FeaturesConfig:
    """Feature toggles."""

    auto_deploy: bool = True
    security_scans: bool = True
    ai_suggestions: bool = True


@dataclass
class PipelineConfig:
    """Settings for external step execution."""

    package_manager: str = "npm"
    command_timeout: Optional[float] = None  # seconds; None waits forever
    stream_output: bool = False              # echo child output live


@dataclass
class AppConfig:
    """Top-level configuration."""

    github: GitHubConfig = field(default_factory=GitHubConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    features: FeaturesConfig = field(default_factory=FeaturesConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        def section(name: str) -> Dict[str, Any]:
            data = payload.get(name, {}) or {}
            if not isinstance(data, dict):
                raise ValueError(f"Config section '{name}' must be an object")
            # Keys starting with an underscore are comments
            return {k: v for k, v in data.items() if not k.startswith("_")}

        return cls(
            github=GitHubConfig(**{**GitHubConfig().__dict__, **section("github")}),
            llm=LLMConfig(**{**LLMConfig().__dict__, **section("llm")}),
            paths=PathsConfig(**{**PathsConfig().__dict__, **section("paths")}),
            features=FeaturesConfig(**{**FeaturesConfig().__dict__, **section("features")}),
            pipeline=PipelineConfig(**{**PipelineConfig().__dict__, **section("pipeline")}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _apply_env_overrides(config: AppConfig) -> AppConfig:
    """Environment variables take priority over the preferences document.

    - DEVFLOW_GITHUB_TOKEN / DEVFLOW_GITHUB_USERNAME
    - DEVFLOW_<PROVIDER>_API_KEY, then DEVFLOW_LLM_API_KEY
    - DEVFLOW_LLM_PROXY
    - DEVFLOW_PACKAGE_MANAGER
    """
    env_token = os.getenv("DEVFLOW_GITHUB_TOKEN")
    if env_token:
        config.github.token = env_token

    env_username = os.getenv("DEVFLOW_GITHUB_USERNAME")
    if env_username:
        config.github.username = env_username

    if not config.llm.api_key:
        provider_key = f"DEVFLOW_{config.llm.provider.upper().replace('-', '_')}_API_KEY"
        config.llm.api_key = os.getenv(provider_key) or os.getenv("DEVFLOW_LLM_API_KEY")

    env_proxy = os.getenv("DEVFLOW_LLM_PROXY")
    if env_proxy:
        config.llm.proxy = env_proxy

    env_pm = os.getenv("DEVFLOW_PACKAGE_MANAGER")
    if env_pm:
        config.pipeline.package_manager = env_pm

    defaults = PROVIDER_DEFAULTS.get(config.llm.provider.lower())
    if defaults:
        if not config.llm.model and defaults["model"]:
            config.llm.model = defaults["model"]
        if not config.llm.endpoint:
            config.llm.endpoint = defaults["endpoint"]

    return config


def _deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Reads and writes the preferences document.

    ``get`` never fails the caller: a missing or unreadable document yields
    the defaults. ``save`` merges a partial document and rewrites the file.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path else CONFIG_FILE

    def _read_document(self) -> Dict[str, Any]:
        if not self.path.is_file():
            return {}
        with self.path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a JSON object")
        return data

    def get(self) -> AppConfig:
        try:
            config = AppConfig.from_dict(self._read_document())
        except (OSError, ValueError, TypeError) as exc:
            logger.error("Error reading config %s: %s", self.path, exc)
            config = AppConfig()
        return _apply_env_overrides(config)

    def save(self, partial: Dict[str, Any]) -> bool:
        try:
            try:
                current = self._read_document()
            except ValueError:
                current = {}
            merged = _deep_merge(AppConfig.from_dict(current).to_dict(), partial)
            # Reject shapes the dataclasses cannot hold before touching disk
            AppConfig.from_dict(merged)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(merged, indent=2), encoding="utf-8")
            return True
        except (OSError, ValueError, TypeError) as exc:
            logger.error("Error saving config %s: %s", self.path, exc)
            return False

    def validate(self) -> List[str]:
        config = self.get()
        errors: List[str] = []

        if not config.github.token:
            errors.append("GitHub token is required")

        if config.features.ai_suggestions and not config.llm.api_key:
            errors.append(f"API key is required for LLM provider '{config.llm.provider}'")

        return errors


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from `path` or the default location."""
    return ConfigManager(Path(path) if path else None).get()
