"""Settings for the upgrade analyzer.

Scope-aware YAML settings, validated with pydantic.

Scope priority (most specific wins):
1. local (.upgrade-analyzer/settings.local.yaml) - gitignored, machine-specific
2. project (.upgrade-analyzer/settings.yaml) - committed, team-shared
3. global (~/.upgrade-analyzer/settings.yaml) - user defaults

Example settings.yaml:

    path_resolution:
      path_configuration:
        custom_paths:
          web-dir: app/web
        search_directories: [packages]
        exclude_patterns: ["*.bak"]
      cache:
        ttl_seconds: 600
        persistent: true
      logging:
        level: DEBUG
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from typing import Literal

import yaml
from pydantic import BaseModel
from pydantic import Field

from .path_resolution.models import CacheOptions
from .path_resolution.models import PathConfiguration

logger = logging.getLogger(__name__)

Scope = Literal["local", "project", "global"]

SETTINGS_DIR_NAME = ".upgrade-analyzer"


@dataclass
class SettingsPaths:
    """Standard paths for settings files."""

    global_settings: Path
    project_settings: Path
    local_settings: Path

    @classmethod
    def default(cls) -> SettingsPaths:
        return cls(
            global_settings=Path.home() / SETTINGS_DIR_NAME / "settings.yaml",
            project_settings=Path.cwd() / SETTINGS_DIR_NAME / "settings.yaml",
            local_settings=Path.cwd() / SETTINGS_DIR_NAME / "settings.local.yaml",
        )


class PathConfigurationSettings(BaseModel):
    """Resolution hints applied to every request."""

    custom_paths: dict[str, str] = Field(
        default_factory=dict, description="Overrides keyed by path type or web-dir/vendor-dir/typo3conf-dir"
    )
    search_directories: list[str] = Field(default_factory=list, description="Extra extension search directories")
    exclude_patterns: list[str] = Field(default_factory=list, description="Glob patterns of paths to skip")
    follow_symlinks: bool = Field(default=True, description="Accept symlinked candidates")
    validate_exists: bool = Field(default=True, description="Require resolved paths to exist")
    max_depth: int = Field(default=10, description="Upper bound for recursive scans")

    def to_path_configuration(self) -> PathConfiguration:
        return PathConfiguration(
            custom_paths=self.custom_paths,
            search_directories=tuple(self.search_directories),
            exclude_patterns=tuple(self.exclude_patterns),
            follow_symlinks=self.follow_symlinks,
            validate_exists=self.validate_exists,
            max_depth=self.max_depth,
        )


class CacheSettings(BaseModel):
    """Resolution cache configuration."""

    enabled: bool = Field(default=True, description="Cache resolution results")
    ttl_seconds: int = Field(default=300, ge=0, description="Entry lifetime in seconds")
    max_memory_entries: int = Field(default=1000, ge=1, description="In-memory LRU capacity")
    persistent: bool = Field(default=False, description="Also store results on disk")
    directory: str | None = Field(None, description="Persistent cache directory (default ~/.upgrade-analyzer/cache)")

    def to_cache_options(self) -> CacheOptions:
        return CacheOptions(
            enabled=self.enabled,
            ttl_seconds=self.ttl_seconds,
            use_memory_cache=True,
            use_persistent_cache=self.persistent,
        )


class LoggingSettings(BaseModel):
    """JSONL log sink configuration."""

    path: str | None = Field(None, description="JSONL log file (default from UPGRADE_ANALYZER_LOG_PATH)")
    level: str | None = Field(None, description="Log level (default from UPGRADE_ANALYZER_LOG_LEVEL)")


class PathResolutionSettings(BaseModel):
    """The ``path_resolution`` settings section."""

    path_configuration: PathConfigurationSettings = Field(default_factory=PathConfigurationSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class AppSettings:
    """Scope-aware settings manager.

    Usage:
        settings = AppSettings()
        resolution = settings.get_path_resolution_settings()
        settings.set_custom_path("web-dir", "app/web", scope="project")
    """

    def __init__(self, paths: SettingsPaths | None = None) -> None:
        self.paths = paths or SettingsPaths.default()

    def get_merged_settings(self) -> dict[str, Any]:
        """Load and merge settings from all scopes."""
        result: dict[str, Any] = {}
        for path in [self.paths.global_settings, self.paths.project_settings, self.paths.local_settings]:
            if path.exists():
                try:
                    with open(path) as f:
                        content = yaml.safe_load(f) or {}
                    result = self._deep_merge(result, content)
                except (OSError, yaml.YAMLError) as e:
                    logger.warning(f"Skipping malformed settings file {path}: {e}")
        return result

    def get_path_resolution_settings(self) -> PathResolutionSettings:
        """Validated ``path_resolution`` section.

        Raises:
            pydantic.ValidationError: Section has invalid values
        """
        section = self.get_merged_settings().get("path_resolution") or {}
        return PathResolutionSettings.model_validate(section)

    def set_custom_path(self, name: str, value: str, scope: Scope = "project") -> None:
        settings = self._read_scope(scope)
        section = settings.setdefault("path_resolution", {})
        config = section.setdefault("path_configuration", {})
        config.setdefault("custom_paths", {})[name] = value
        self._write_scope(scope, settings)

    def _get_scope_path(self, scope: Scope) -> Path:
        return {
            "local": self.paths.local_settings,
            "project": self.paths.project_settings,
            "global": self.paths.global_settings,
        }[scope]

    def _read_scope(self, scope: Scope) -> dict[str, Any]:
        path = self._get_scope_path(scope)
        if not path.exists():
            return {}
        with open(path) as f:
            return yaml.safe_load(f) or {}

    def _write_scope(self, scope: Scope, settings: dict[str, Any]) -> None:
        path = self._get_scope_path(scope)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(settings, f, default_flow_style=False)

    def _deep_merge(self, base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dicts, overlay wins."""
        result = base.copy()
        for key, value in overlay.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result
