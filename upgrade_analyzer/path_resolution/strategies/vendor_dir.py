"""Composer vendor directory resolution."""

from pathlib import Path

from ..enums import InstallationType
from ..enums import PathType
from ..enums import StrategyPriority
from ..filesystem import DEFAULT_VENDOR_DIR
from ..models import PathResolutionRequest
from .base import PathResolutionStrategy
from .base import Trail


class VendorDirStrategy(PathResolutionStrategy):
    """Vendor directory from composer.json ``config.vendor-dir``, default ``vendor``."""

    IDENTIFIER = "vendor_dir_strategy"
    PATH_TYPES = frozenset({PathType.VENDOR_DIR})
    INSTALLATION_TYPES = frozenset(
        {InstallationType.COMPOSER_STANDARD, InstallationType.COMPOSER_CUSTOM, InstallationType.AUTO_DETECT}
    )
    PRIORITIES = {
        InstallationType.COMPOSER_STANDARD: StrategyPriority.HIGH,
        InstallationType.COMPOSER_CUSTOM: StrategyPriority.HIGHEST,
        InstallationType.AUTO_DETECT: StrategyPriority.NORMAL,
    }

    def _locate(self, request: PathResolutionRequest, layout: InstallationType, trail: Trail) -> Path | None:
        trail.attempt(request.installation_path / "composer.json")
        vendor = self._vendor_dir(request)
        found = self._first_existing([vendor], request, trail)
        default = request.installation_path / DEFAULT_VENDOR_DIR
        if found is None and default != vendor and self.probe.is_dir(default):
            trail.suggest(default)
        return found
