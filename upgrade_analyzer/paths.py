"""CLI path policy and dependency wiring.

This module centralizes path-related policy decisions (where the cache lives)
and is the single composition root for the path resolution service.
Libraries receive their collaborators via injection; this module provides
the CLI's choices.
"""

from pathlib import Path

from .path_resolution.cache import JsonFileCacheLayer
from .path_resolution.cache import MemoryCacheLayer
from .path_resolution.cache import MultiLayerPathResolutionCache
from .path_resolution.filesystem import ComposerManifestReader
from .path_resolution.filesystem import FilesystemProbe
from .path_resolution.filesystem import InstallationTypeDetector
from .path_resolution.filesystem import LocalFilesystemProbe
from .path_resolution.recovery import ErrorRecoveryManager
from .path_resolution.registry import PathResolutionStrategyRegistry
from .path_resolution.service import PathResolutionService
from .path_resolution.strategies import DEFAULT_STRATEGY_CLASSES
from .path_resolution.validator import PathResolutionValidator
from .settings import SETTINGS_DIR_NAME
from .settings import PathResolutionSettings


def get_cache_dir(settings: PathResolutionSettings | None = None) -> Path:
    """Persistent path resolution cache directory.

    Uses the configured directory when set, otherwise
    ~/.upgrade-analyzer/cache/path-resolution.
    """
    if settings is not None and settings.cache.directory:
        return Path(settings.cache.directory).expanduser()
    return Path.home() / SETTINGS_DIR_NAME / "cache" / "path-resolution"


def create_installation_type_detector(
    probe: FilesystemProbe | None = None,
    manifest_reader: ComposerManifestReader | None = None,
) -> InstallationTypeDetector:
    probe = probe or LocalFilesystemProbe()
    return InstallationTypeDetector(manifest_reader or ComposerManifestReader(probe), probe)


def create_strategy_registry(
    probe: FilesystemProbe | None = None,
    manifest_reader: ComposerManifestReader | None = None,
    detector: InstallationTypeDetector | None = None,
) -> PathResolutionStrategyRegistry:
    """Registry holding every built-in strategy.

    Strategies share one probe, manifest reader and detector so that
    composer.json is parsed once per installation.
    """
    probe = probe or LocalFilesystemProbe()
    manifest_reader = manifest_reader or ComposerManifestReader(probe)
    detector = detector or create_installation_type_detector(probe, manifest_reader)
    return PathResolutionStrategyRegistry(
        [strategy_class(probe, manifest_reader, detector) for strategy_class in DEFAULT_STRATEGY_CLASSES]
    )


def create_path_resolution_cache(settings: PathResolutionSettings) -> MultiLayerPathResolutionCache | None:
    if not settings.cache.enabled:
        return None
    persistent = JsonFileCacheLayer(get_cache_dir(settings)) if settings.cache.persistent else None
    return MultiLayerPathResolutionCache(MemoryCacheLayer(settings.cache.max_memory_entries), persistent)


def create_path_resolution_service(
    settings: PathResolutionSettings | None = None,
    probe: FilesystemProbe | None = None,
) -> PathResolutionService:
    """Build a fully wired PathResolutionService.

    Args:
        settings: Validated settings (defaults when omitted)
        probe: Filesystem probe override (tests)

    Returns:
        Service with all built-in strategies, validator, cache and recovery
    """
    settings = settings or PathResolutionSettings()
    probe = probe or LocalFilesystemProbe()
    manifest_reader = ComposerManifestReader(probe)
    detector = create_installation_type_detector(probe, manifest_reader)
    registry = create_strategy_registry(probe, manifest_reader, detector)

    return PathResolutionService(
        registry=registry,
        validator=PathResolutionValidator(probe),
        cache=create_path_resolution_cache(settings),
        recovery=ErrorRecoveryManager(registry, probe, detector),
    )
