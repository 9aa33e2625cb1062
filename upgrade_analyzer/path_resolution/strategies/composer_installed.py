"""Composer lock metadata (vendor/composer/installed.json) resolution."""

from pathlib import Path

from ..enums import InstallationType
from ..enums import PathType
from ..enums import StrategyPriority
from ..filesystem import DEFAULT_VENDOR_DIR
from ..models import PathResolutionRequest
from .base import PathResolutionStrategy
from .base import Trail

INSTALLED_JSON = Path("composer") / "installed.json"


class ComposerInstalledStrategy(PathResolutionStrategy):
    IDENTIFIER = "composer_installed_strategy"
    PATH_TYPES = frozenset({PathType.COMPOSER_INSTALLED})
    INSTALLATION_TYPES = frozenset(
        {InstallationType.COMPOSER_STANDARD, InstallationType.COMPOSER_CUSTOM, InstallationType.AUTO_DETECT}
    )
    PRIORITIES = {
        InstallationType.COMPOSER_STANDARD: StrategyPriority.HIGH,
        InstallationType.COMPOSER_CUSTOM: StrategyPriority.HIGHEST,
        InstallationType.AUTO_DETECT: StrategyPriority.NORMAL,
    }
    REQUIRED_PROBE_METHODS = ("exists", "is_file")

    def _locate(self, request: PathResolutionRequest, layout: InstallationType, trail: Trail) -> Path | None:
        candidates = [
            self._vendor_dir(request) / INSTALLED_JSON,
            request.installation_path / DEFAULT_VENDOR_DIR / INSTALLED_JSON,
        ]
        return self._first_existing(dict.fromkeys(candidates), request, trail, expect_file=True)
