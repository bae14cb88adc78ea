"""Configuration loading for reforge (.reforge.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import yaml

CONFIG_FILENAME = ".reforge.yml"
DEFAULT_GITHUB_API_BASE = "https://api.github.com/repos"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class LLMConfig:
    """Language model endpoint settings."""

    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    request_timeout: Optional[float] = None


@dataclass
class GitHubConfig:
    """GitHub API access and retry settings."""

    api_base: str = DEFAULT_GITHUB_API_BASE
    token: Optional[str] = None
    batch_size: int = 20
    max_retries: int = 3
    backoff: float = 0.3
    request_timeout: float = 30.0


@dataclass
class SelectionConfig:
    """Bounds applied to the model's file selection."""

    max_files: int = 50


@dataclass
class ReforgeConfig:
    """Represents the settings defined in .reforge.yml."""

    root: Path
    llm: LLMConfig = field(default_factory=LLMConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    output_dir: Optional[Path] = None


def load_config(config_path: Path | None = None) -> ReforgeConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path or Path.cwd())
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    llm_data = _as_dict(data.get("llm"))
    llm = LLMConfig(
        model=_as_str(llm_data.get("model")),
        base_url=_as_str(llm_data.get("base_url")),
        api_key=_as_str(llm_data.get("api_key")),
        temperature=_as_float(llm_data.get("temperature")),
        max_tokens=_as_int(llm_data.get("max_tokens")),
        request_timeout=_as_float(llm_data.get("request_timeout")),
    )

    github_data = _as_dict(data.get("github"))
    defaults = GitHubConfig()
    github = GitHubConfig(
        api_base=(_as_str(github_data.get("api_base")) or defaults.api_base).rstrip("/"),
        token=_as_str(github_data.get("token")) or _first_env_value(("GITHUB_TOKEN", "GH_TOKEN")),
        batch_size=_positive(_as_int(github_data.get("batch_size")), defaults.batch_size),
        max_retries=_non_negative(_as_int(github_data.get("max_retries")), defaults.max_retries),
        backoff=_as_float(github_data.get("backoff")) or defaults.backoff,
        request_timeout=_as_float(github_data.get("request_timeout")) or defaults.request_timeout,
    )

    selection_data = _as_dict(data.get("selection"))
    selection = SelectionConfig(
        max_files=_positive(_as_int(selection_data.get("max_files")), SelectionConfig.max_files),
    )

    output_data = _as_dict(data.get("output"))
    output_dir_str = _as_str(output_data.get("directory"))
    output_dir = root / output_dir_str if output_dir_str else None

    return ReforgeConfig(
        root=root,
        llm=llm,
        github=github,
        selection=selection,
        output_dir=output_dir,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _first_env_value(keys: Sequence[str]) -> str | None:
    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _positive(value: Optional[int], default: int) -> int:
    return value if value is not None and value > 0 else default


def _non_negative(value: Optional[int], default: int) -> int:
    return value if value is not None and value >= 0 else default


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "GitHubConfig",
    "LLMConfig",
    "ReforgeConfig",
    "SelectionConfig",
    "load_config",
]
