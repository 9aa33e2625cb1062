"""Extension activation state (typo3conf/PackageStates.php) resolution."""

from pathlib import Path

from ..enums import InstallationType
from ..enums import PathType
from ..enums import StrategyPriority
from ..models import PathResolutionRequest
from .base import PathResolutionStrategy
from .base import Trail

PACKAGE_STATES_FILE = "PackageStates.php"


class PackageStatesStrategy(PathResolutionStrategy):
    IDENTIFIER = "package_states_strategy"
    PATH_TYPES = frozenset({PathType.PACKAGE_STATES})
    INSTALLATION_TYPES = frozenset(InstallationType)
    PRIORITIES = {
        InstallationType.COMPOSER_STANDARD: StrategyPriority.HIGH,
        InstallationType.COMPOSER_CUSTOM: StrategyPriority.HIGHEST,
        InstallationType.LEGACY_SOURCE: StrategyPriority.HIGH,
        InstallationType.AUTO_DETECT: StrategyPriority.NORMAL,
    }
    REQUIRED_PROBE_METHODS = ("exists", "is_file")

    def _locate(self, request: PathResolutionRequest, layout: InstallationType, trail: Trail) -> Path | None:
        candidates = [conf / PACKAGE_STATES_FILE for conf in self._typo3conf_candidates(request, layout, trail)]
        return self._first_existing(candidates, request, trail, expect_file=True)
