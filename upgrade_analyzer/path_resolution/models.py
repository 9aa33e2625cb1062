"""Value types for path resolution.

All types are immutable. A request is evaluated against a single frozen
PathConfiguration snapshot; changes are made by copying (``with_changes``).
"""

from __future__ import annotations

import fnmatch
import hashlib
import json
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from dataclasses import replace
from pathlib import Path
from types import MappingProxyType
from typing import Any

from .enums import InstallationType
from .enums import PathType
from .enums import ResolutionStatus
from .exceptions import ConstructionError


@dataclass(frozen=True)
class PathConfiguration:
    """Resolution hints shared by every request of an analysis run.

    Attributes:
        custom_paths: Explicit overrides keyed by path-type value or by
            ``web-dir`` / ``vendor-dir`` / ``typo3conf-dir``
        search_directories: Extra directories (relative to the installation
            root, or absolute) scanned for extensions
        exclude_patterns: Glob patterns; matching candidates are skipped
        follow_symlinks: Accept candidates that are symlinks
        validate_exists: Require resolved paths to exist on disk
        max_depth: Upper bound for recursive scans
    """

    custom_paths: Mapping[str, str] = field(default_factory=dict)
    search_directories: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()
    follow_symlinks: bool = True
    validate_exists: bool = True
    max_depth: int = 10

    def __post_init__(self) -> None:
        # Freeze containers so the snapshot cannot be mutated mid-resolution
        object.__setattr__(self, "custom_paths", MappingProxyType(dict(self.custom_paths)))
        object.__setattr__(self, "search_directories", tuple(self.search_directories))
        object.__setattr__(self, "exclude_patterns", tuple(self.exclude_patterns))

    @classmethod
    def default(cls) -> PathConfiguration:
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PathConfiguration:
        """Create from a dictionary (accepts snake_case or camelCase keys)."""

        def pick(snake: str, camel: str, default: Any) -> Any:
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        return cls(
            custom_paths={str(k): str(v) for k, v in (pick("custom_paths", "customPaths", None) or {}).items()},
            search_directories=tuple(pick("search_directories", "searchDirectories", None) or ()),
            exclude_patterns=tuple(pick("exclude_patterns", "excludePatterns", None) or ()),
            follow_symlinks=bool(pick("follow_symlinks", "followSymlinks", True)),
            validate_exists=bool(pick("validate_exists", "validateExists", True)),
            max_depth=int(pick("max_depth", "maxDepth", 10)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "custom_paths": dict(sorted(self.custom_paths.items())),
            "search_directories": list(self.search_directories),
            "exclude_patterns": list(self.exclude_patterns),
            "follow_symlinks": self.follow_symlinks,
            "validate_exists": self.validate_exists,
            "max_depth": self.max_depth,
        }

    def get_custom_path(self, name: str) -> str | None:
        return self.custom_paths.get(name)

    def with_changes(self, **changes: Any) -> PathConfiguration:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def is_excluded(self, path: Path) -> bool:
        """Check a candidate against the exclusion patterns.

        Patterns are matched against both the full path and its final name.
        """
        text = str(path)
        return any(
            fnmatch.fnmatch(text, pattern) or fnmatch.fnmatch(path.name, pattern) for pattern in self.exclude_patterns
        )


@dataclass(frozen=True)
class ExtensionIdentifier:
    """Identifies the extension an EXTENSION request is about."""

    key: str
    version: str | None = None
    type: str | None = None
    composer_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "version": self.version,
            "type": self.type,
            "composer_name": self.composer_name,
        }


@dataclass(frozen=True)
class CacheOptions:
    """Per-request caching behaviour."""

    enabled: bool = True
    ttl_seconds: int = 300
    use_memory_cache: bool = True
    use_persistent_cache: bool = False


@dataclass(frozen=True)
class ValidationRule:
    """Caller-supplied validation rule (see PathResolutionValidator)."""

    name: str
    parameters: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FallbackStrategy:
    """A registered strategy to try after recovery techniques are exhausted."""

    strategy: str
    priority: int = 100
    options: Mapping[str, Any] = field(default_factory=dict)


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class PathResolutionRequest:
    """Unit of work for the PathResolutionService.

    Build through ``PathResolutionRequest.builder()``; the builder rejects
    missing fields and incompatible path/installation types.
    """

    path_type: PathType
    installation_path: Path
    installation_type: InstallationType
    path_configuration: PathConfiguration = field(default_factory=PathConfiguration)
    extension_identifier: ExtensionIdentifier | None = None
    validation_rules: tuple[ValidationRule, ...] = ()
    fallback_strategies: tuple[FallbackStrategy, ...] = ()
    cache_options: CacheOptions = field(default_factory=CacheOptions)

    @staticmethod
    def builder() -> PathResolutionRequestBuilder:
        return PathResolutionRequestBuilder()

    @property
    def cache_key(self) -> str:
        """Deterministic key derived from the request.

        Format: path_resolution:{path_type}:{installation_type}:{sha256(path)}:{sha256(config)}
        The configuration hash also covers the extension identifier so that
        requests for different extensions never share an entry.
        """
        payload = {
            "configuration": self.path_configuration.to_dict(),
            "extension": self.extension_identifier.to_dict() if self.extension_identifier else None,
        }
        return ":".join(
            [
                "path_resolution",
                self.path_type.value,
                self.installation_type.value,
                _sha256(str(self.installation_path)),
                _sha256(json.dumps(payload, sort_keys=True)),
            ]
        )

    def with_extension_identifier(self, identifier: ExtensionIdentifier) -> PathResolutionRequest:
        return replace(self, extension_identifier=identifier)

    def with_installation_type(self, installation_type: InstallationType) -> PathResolutionRequest:
        return replace(self, installation_type=installation_type)


class PathResolutionRequestBuilder:
    """Fluent builder that validates a request before it can exist.

    Usage:
        request = (
            PathResolutionRequest.builder()
            .path_type(PathType.EXTENSION)
            .installation_path("/var/www/site")
            .installation_type(InstallationType.COMPOSER_STANDARD)
            .extension_identifier(ExtensionIdentifier("news"))
            .build()
        )
    """

    def __init__(self) -> None:
        self._path_type: PathType | None = None
        self._installation_path: Path | None = None
        self._installation_type: InstallationType | None = None
        self._path_configuration: PathConfiguration | None = None
        self._extension_identifier: ExtensionIdentifier | None = None
        self._validation_rules: list[ValidationRule] = []
        self._fallback_strategies: list[FallbackStrategy] = []
        self._cache_options: CacheOptions | None = None

    def path_type(self, path_type: PathType) -> PathResolutionRequestBuilder:
        self._path_type = PathType(path_type)
        return self

    def installation_path(self, path: str | Path) -> PathResolutionRequestBuilder:
        """Set the installation root.

        Raises:
            ConstructionError: Path does not exist
        """
        candidate = Path(path).expanduser()
        if not candidate.exists():
            raise ConstructionError(f"Installation path does not exist: {candidate}")
        self._installation_path = candidate.resolve()
        return self

    def installation_type(self, installation_type: InstallationType) -> PathResolutionRequestBuilder:
        self._installation_type = InstallationType(installation_type)
        return self

    def path_configuration(self, configuration: PathConfiguration) -> PathResolutionRequestBuilder:
        self._path_configuration = configuration
        return self

    def extension_identifier(self, identifier: ExtensionIdentifier) -> PathResolutionRequestBuilder:
        self._extension_identifier = identifier
        return self

    def add_validation_rule(
        self, name: str, parameters: Mapping[str, Any] | None = None
    ) -> PathResolutionRequestBuilder:
        self._validation_rules.append(ValidationRule(name, dict(parameters or {})))
        return self

    def add_fallback_strategy(self, strategy: str, priority: int = 100, **options: Any) -> PathResolutionRequestBuilder:
        self._fallback_strategies.append(FallbackStrategy(strategy, priority, options))
        return self

    def cache_options(self, options: CacheOptions) -> PathResolutionRequestBuilder:
        self._cache_options = options
        return self

    def build(self) -> PathResolutionRequest:
        """Build the request.

        Raises:
            ConstructionError: Required field missing or path type incompatible
                with installation type
        """
        missing = [
            name
            for name, value in (
                ("path_type", self._path_type),
                ("installation_path", self._installation_path),
                ("installation_type", self._installation_type),
            )
            if value is None
        ]
        if missing:
            raise ConstructionError(f"Missing required fields: {', '.join(missing)}")

        assert self._path_type is not None
        assert self._installation_path is not None
        assert self._installation_type is not None

        if not self._path_type.is_compatible_with(self._installation_type):
            raise ConstructionError(
                f"Path type {self._path_type.value} is not compatible with "
                f"installation type {self._installation_type.value}"
            )

        return PathResolutionRequest(
            path_type=self._path_type,
            installation_path=self._installation_path,
            installation_type=self._installation_type,
            path_configuration=self._path_configuration or PathConfiguration.default(),
            extension_identifier=self._extension_identifier,
            validation_rules=tuple(self._validation_rules),
            fallback_strategies=tuple(self._fallback_strategies),
            cache_options=self._cache_options or CacheOptions(),
        )


@dataclass(frozen=True)
class PathResolutionMetadata:
    """Diagnostics attached to every response.

    Attributes:
        used_strategy: Identifier of the strategy (or recovery technique) that
            produced the response
        strategy_priority: Priority the strategy had for this request
        attempted_paths: Every candidate path that was probed
        strategy_chain: Strategies and techniques involved, in order
        cache_hit_ratio: Cache hit ratio at the time the response was served
        was_from_cache: True when served from the resolution cache
        fallback_reason: Why a fallback/recovery produced this response
        recovery_attempts: Recovery techniques that ran, in order
    """

    path_type: PathType
    installation_type: InstallationType
    used_strategy: str
    strategy_priority: int = 0
    attempted_paths: tuple[Path, ...] = ()
    strategy_chain: tuple[str, ...] = ()
    cache_hit_ratio: float = 0.0
    was_from_cache: bool = False
    fallback_reason: str | None = None
    recovery_attempts: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "path_type": self.path_type.value,
            "installation_type": self.installation_type.value,
            "used_strategy": self.used_strategy,
            "strategy_priority": self.strategy_priority,
            "attempted_paths": [str(p) for p in self.attempted_paths],
            "strategy_chain": list(self.strategy_chain),
            "cache_hit_ratio": self.cache_hit_ratio,
            "was_from_cache": self.was_from_cache,
            "fallback_reason": self.fallback_reason,
            "recovery_attempts": list(self.recovery_attempts),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PathResolutionMetadata:
        return cls(
            path_type=PathType(data["path_type"]),
            installation_type=InstallationType(data["installation_type"]),
            used_strategy=data["used_strategy"],
            strategy_priority=int(data.get("strategy_priority", 0)),
            attempted_paths=tuple(Path(p) for p in data.get("attempted_paths", [])),
            strategy_chain=tuple(data.get("strategy_chain", [])),
            cache_hit_ratio=float(data.get("cache_hit_ratio", 0.0)),
            was_from_cache=bool(data.get("was_from_cache", False)),
            fallback_reason=data.get("fallback_reason"),
            recovery_attempts=tuple(data.get("recovery_attempts", [])),
        )


@dataclass(frozen=True)
class PathResolutionResponse:
    """Immutable resolution result.

    SUCCESS carries exactly one resolved path; NOT_FOUND and ERROR carry none.
    Create through ``success()``, ``not_found()`` or ``error()``.
    """

    status: ResolutionStatus
    path_type: PathType
    resolved_path: Path | None
    metadata: PathResolutionMetadata
    alternative_paths: tuple[Path, ...] = ()
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    cache_key: str | None = None
    resolution_time: float | None = None

    def __post_init__(self) -> None:
        if self.status == ResolutionStatus.SUCCESS and self.resolved_path is None:
            raise ValueError("SUCCESS response requires a resolved path")
        if self.status != ResolutionStatus.SUCCESS and self.resolved_path is not None:
            raise ValueError(f"{self.status.value} response cannot carry a resolved path")

    @classmethod
    def success(
        cls,
        path_type: PathType,
        resolved_path: Path,
        metadata: PathResolutionMetadata,
        alternative_paths: list[Path] | tuple[Path, ...] = (),
        warnings: list[str] | tuple[str, ...] = (),
        cache_key: str | None = None,
        resolution_time: float | None = None,
    ) -> PathResolutionResponse:
        return cls(
            ResolutionStatus.SUCCESS,
            path_type,
            Path(resolved_path),
            metadata,
            tuple(alternative_paths),
            tuple(warnings),
            (),
            cache_key,
            resolution_time,
        )

    @classmethod
    def not_found(
        cls,
        path_type: PathType,
        metadata: PathResolutionMetadata,
        alternative_paths: list[Path] | tuple[Path, ...] = (),
        warnings: list[str] | tuple[str, ...] = (),
        cache_key: str | None = None,
        resolution_time: float | None = None,
    ) -> PathResolutionResponse:
        return cls(
            ResolutionStatus.NOT_FOUND,
            path_type,
            None,
            metadata,
            tuple(alternative_paths),
            tuple(warnings),
            (),
            cache_key,
            resolution_time,
        )

    @classmethod
    def error(
        cls,
        path_type: PathType,
        metadata: PathResolutionMetadata,
        errors: list[str] | tuple[str, ...],
        warnings: list[str] | tuple[str, ...] = (),
        cache_key: str | None = None,
        resolution_time: float | None = None,
    ) -> PathResolutionResponse:
        return cls(
            ResolutionStatus.ERROR,
            path_type,
            None,
            metadata,
            (),
            tuple(warnings),
            tuple(errors),
            cache_key,
            resolution_time,
        )

    @property
    def is_success(self) -> bool:
        return self.status == ResolutionStatus.SUCCESS

    @property
    def is_not_found(self) -> bool:
        return self.status == ResolutionStatus.NOT_FOUND

    @property
    def is_error(self) -> bool:
        return self.status == ResolutionStatus.ERROR

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def is_cacheable(self) -> bool:
        """SUCCESS, or NOT_FOUND with alternatives. ERROR is never cached."""
        return self.is_success or (self.is_not_found and bool(self.alternative_paths))

    @property
    def best_alternative(self) -> Path | None:
        return self.alternative_paths[0] if self.alternative_paths else None

    def with_timing(self, cache_key: str, resolution_time: float) -> PathResolutionResponse:
        return replace(self, cache_key=cache_key, resolution_time=resolution_time)

    def with_warnings(self, warnings: list[str] | tuple[str, ...]) -> PathResolutionResponse:
        """Prepend warnings (e.g. from validation), keeping order and dropping duplicates."""
        merged = list(dict.fromkeys([*warnings, *self.warnings]))
        return replace(self, warnings=tuple(merged))

    def mark_from_cache(self, cache_hit_ratio: float) -> PathResolutionResponse:
        metadata = replace(self.metadata, was_from_cache=True, cache_hit_ratio=cache_hit_ratio)
        return replace(self, metadata=metadata)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "path_type": self.path_type.value,
            "resolved_path": str(self.resolved_path) if self.resolved_path else None,
            "metadata": self.metadata.to_dict(),
            "alternative_paths": [str(p) for p in self.alternative_paths],
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "cache_key": self.cache_key,
            "resolution_time": self.resolution_time,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PathResolutionResponse:
        resolved = data.get("resolved_path")
        return cls(
            status=ResolutionStatus(data["status"]),
            path_type=PathType(data["path_type"]),
            resolved_path=Path(resolved) if resolved else None,
            metadata=PathResolutionMetadata.from_dict(data["metadata"]),
            alternative_paths=tuple(Path(p) for p in data.get("alternative_paths", [])),
            warnings=tuple(data.get("warnings", [])),
            errors=tuple(data.get("errors", [])),
            cache_key=data.get("cache_key"),
            resolution_time=data.get("resolution_time"),
        )
