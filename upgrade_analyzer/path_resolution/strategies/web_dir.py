"""Web root resolution."""

from pathlib import Path

from ..enums import InstallationType
from ..enums import PathType
from ..enums import StrategyPriority
from ..models import PathResolutionRequest
from .base import PathResolutionStrategy
from .base import Trail


class WebDirStrategy(PathResolutionStrategy):
    """Web root from composer.json ``extra.typo3/cms.web-dir``, default ``public``.

    Legacy installations serve the installation root itself.
    """

    IDENTIFIER = "web_dir_strategy"
    PATH_TYPES = frozenset({PathType.WEB_DIR})
    INSTALLATION_TYPES = frozenset(InstallationType)
    PRIORITIES = {
        InstallationType.COMPOSER_STANDARD: StrategyPriority.HIGH,
        InstallationType.COMPOSER_CUSTOM: StrategyPriority.HIGHEST,
        InstallationType.LEGACY_SOURCE: StrategyPriority.LOW,
        InstallationType.AUTO_DETECT: StrategyPriority.NORMAL,
    }

    def _locate(self, request: PathResolutionRequest, layout: InstallationType, trail: Trail) -> Path | None:
        web_root = self._web_root(request, layout, trail)
        found = self._first_existing([web_root], request, trail)
        if found is None:
            for name in ("public", "web", "htdocs", "public_html"):
                alternative = request.installation_path / name
                if alternative != web_root and self.probe.is_dir(alternative):
                    trail.suggest(alternative)
        return found
