"""Configuration directory (typo3conf) resolution."""

from pathlib import Path

from ..enums import InstallationType
from ..enums import PathType
from ..enums import StrategyPriority
from ..models import PathResolutionRequest
from .base import PathResolutionStrategy
from .base import Trail


class Typo3ConfDirStrategy(PathResolutionStrategy):
    """``{web-root}/typo3conf``, falling back to legacy ``{root}/typo3conf``."""

    IDENTIFIER = "typo3conf_dir_strategy"
    PATH_TYPES = frozenset({PathType.TYPO3CONF_DIR})
    INSTALLATION_TYPES = frozenset(InstallationType)
    PRIORITIES = {
        InstallationType.COMPOSER_STANDARD: StrategyPriority.HIGH,
        InstallationType.COMPOSER_CUSTOM: StrategyPriority.HIGHEST,
        InstallationType.LEGACY_SOURCE: StrategyPriority.HIGH,
        InstallationType.AUTO_DETECT: StrategyPriority.NORMAL,
    }

    def _locate(self, request: PathResolutionRequest, layout: InstallationType, trail: Trail) -> Path | None:
        candidates = self._typo3conf_candidates(request, layout, trail)
        found = self._first_existing(candidates, request, trail)
        if found is not None and found != candidates[0]:
            trail.warn(f"Using fallback configuration directory {found} instead of {candidates[0]}")
        return found
