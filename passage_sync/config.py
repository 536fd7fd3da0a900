"""YAML configuration loader and validator."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from passage_sync.core.chunker import DEFAULT_MAX_CHARS
from passage_sync.core.ask_routing import ASK_DEFAULT_CACHE_TTL
from passage_sync.core.sync_plan import DEFAULT_FULL_REINDEX_THRESHOLD
from passage_sync.exceptions import ConfigError
from passage_sync.provider.letta import DEFAULT_BASE_URL

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".passage-sync"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "config.yaml"
DEFAULT_STATE_PATH = CONFIG_DIR / "state.json"

ENV_BASE_URL = "LETTA_BASE_URL"
ENV_API_KEY = "LETTA_API_KEY"


@dataclass
class LettaSettings:
    """Connection and model settings for the Letta server."""

    model: str
    embedding: str
    base_url: str = DEFAULT_BASE_URL
    fast_model: Optional[str] = None
    token: Optional[str] = None

    @classmethod
    def from_yaml_dict(cls, data: Dict[str, Any]) -> "LettaSettings":
        return cls(
            model=_require_str(data, "model", "letta"),
            embedding=_require_str(data, "embedding", "letta"),
            base_url=os.environ.get(ENV_BASE_URL)
            or data.get("base_url")
            or DEFAULT_BASE_URL,
            fast_model=data.get("fast_model") or None,
            token=os.environ.get(ENV_API_KEY) or None,
        )


@dataclass
class Defaults:
    """Values applied to every repo unless the repo overrides them."""

    max_file_size_kb: float = 50
    chunk_size: int = DEFAULT_MAX_CHARS
    full_reindex_threshold: int = DEFAULT_FULL_REINDEX_THRESHOLD
    sync_concurrency: int = 20
    cache_ttl_seconds: float = ASK_DEFAULT_CACHE_TTL

    @classmethod
    def from_yaml_dict(cls, data: Dict[str, Any]) -> "Defaults":
        defaults = cls()
        for name in (
            "max_file_size_kb",
            "chunk_size",
            "full_reindex_threshold",
            "sync_concurrency",
            "cache_ttl_seconds",
        ):
            if data.get(name) is not None:
                setattr(defaults, name, _require_number(data, name, "defaults"))
        return defaults


@dataclass
class RepoConfig:
    """Configuration for a single indexed repository."""

    name: str
    path: Path
    description: str
    extensions: List[str]
    ignore_dirs: List[str]
    max_file_size_kb: float
    base_path: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    @property
    def root(self) -> Path:
        """Directory that files are collected from."""
        return self.path / self.base_path if self.base_path else self.path

    @classmethod
    def from_yaml_dict(
        cls, name: str, data: Dict[str, Any], defaults: Defaults
    ) -> "RepoConfig":
        section = f"repos.{name}"
        if not isinstance(data, dict):
            raise ConfigError(f"{section} must be a mapping")

        return cls(
            name=name,
            path=Path(_require_str(data, "path", section)).expanduser().resolve(),
            base_path=data.get("base_path") or None,
            description=_require_str(data, "description", section),
            extensions=_require_str_list(data, "extensions", section),
            ignore_dirs=_require_str_list(data, "ignore_dirs", section),
            tags=_require_str_list(data, "tags", section, required=False),
            max_file_size_kb=_optional_number(
                data, "max_file_size_kb", section, defaults.max_file_size_kb
            ),
        )


@dataclass
class AppConfig:
    """Top-level validated configuration."""

    letta: LettaSettings
    defaults: Defaults
    repos: Dict[str, RepoConfig]

    @classmethod
    def from_yaml_dict(cls, data: Any) -> "AppConfig":
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping")
        if not isinstance(data.get("letta"), dict):
            raise ConfigError("Missing required section: letta")
        if not isinstance(data.get("repos"), dict):
            raise ConfigError("Missing required section: repos")

        defaults = Defaults.from_yaml_dict(data.get("defaults") or {})
        repos = {
            name: RepoConfig.from_yaml_dict(name, repo, defaults)
            for name, repo in data["repos"].items()
        }
        return cls(
            letta=LettaSettings.from_yaml_dict(data["letta"]),
            defaults=defaults,
            repos=repos,
        )

    def get_repo(self, name: str) -> RepoConfig:
        try:
            return self.repos[name]
        except KeyError:
            raise ConfigError(f"Unknown repo: {name}") from None


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load and validate a YAML configuration file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated AppConfig

    Raises:
        ConfigError: If the file is missing, unparsable, or invalid
    """
    path = Path(path).expanduser()
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML in {path}: {e}") from e

    config = AppConfig.from_yaml_dict(data)
    logger.debug(f"Loaded config from {path} with {len(config.repos)} repos")
    return config


def _require_str(data: Dict[str, Any], key: str, section: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{section}.{key} must be a non-empty string")
    return value


def _require_number(data: Dict[str, Any], key: str, section: str):
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{section}.{key} must be a number")
    return value


def _require_str_list(
    data: Dict[str, Any], key: str, section: str, required: bool = True
) -> List[str]:
    value = data.get(key)
    if value is None and not required:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{section}.{key} must be a list of strings")
    return list(value)


def _optional_number(data: Dict[str, Any], key: str, section: str, default):
    if data.get(key) is None:
        return default
    return _require_number(data, key, section)
