"""Extension directory resolution."""

import logging
from pathlib import Path

from ..enums import InstallationType
from ..enums import PathType
from ..enums import StrategyPriority
from ..filesystem import TYPO3CONF_DIR_NAME
from ..models import PathResolutionRequest
from .base import PathResolutionStrategy
from .base import Trail

logger = logging.getLogger(__name__)

# Web roots commonly found in older composer setups
ALTERNATIVE_WEB_ROOTS = ("app/web", "web")


class ExtensionPathStrategy(PathResolutionStrategy):
    """Locate the directory of a single extension.

    Candidates, in order:
    1. ``{typo3conf}/ext/{key}`` for each configuration directory candidate
    2. ``{alt-web-root}/typo3conf/ext/{key}`` for common alternative web roots
    3. ``{search-dir}/{key}`` for each configured search directory
    4. ``{vendor}/{composer-name}`` when the composer package name is known

    When nothing matches, directories under the ``ext`` folders whose name
    matches the key case-insensitively are offered as suggestions.
    """

    IDENTIFIER = "extension_path_strategy"
    PATH_TYPES = frozenset({PathType.EXTENSION})
    INSTALLATION_TYPES = frozenset(InstallationType)
    PRIORITIES = {
        InstallationType.COMPOSER_STANDARD: StrategyPriority.HIGHEST,
        InstallationType.COMPOSER_CUSTOM: StrategyPriority.HIGH,
        InstallationType.LEGACY_SOURCE: StrategyPriority.NORMAL,
        InstallationType.AUTO_DETECT: StrategyPriority.LOWEST,
    }
    REQUIRED_PROBE_METHODS = ("exists", "is_dir", "is_symlink", "glob_dirs")

    def can_handle(self, request: PathResolutionRequest) -> bool:
        return super().can_handle(request) and request.extension_identifier is not None

    def _not_found_message(self, request: PathResolutionRequest) -> str:
        key = request.extension_identifier.key if request.extension_identifier else "?"
        return f"Extension path not found for: {key}"

    def _locate(self, request: PathResolutionRequest, layout: InstallationType, trail: Trail) -> Path | None:
        assert request.extension_identifier is not None
        identifier = request.extension_identifier
        root = request.installation_path

        ext_dirs = [conf / "ext" for conf in self._typo3conf_candidates(request, layout, trail)]
        for web_root in ALTERNATIVE_WEB_ROOTS:
            ext_dirs.append(root / web_root / TYPO3CONF_DIR_NAME / "ext")
        ext_dirs = list(dict.fromkeys(ext_dirs))

        candidates = [ext_dir / identifier.key for ext_dir in ext_dirs]
        candidates.extend(
            self._resolve_relative(root, search_dir) / identifier.key
            for search_dir in request.path_configuration.search_directories
        )
        if identifier.composer_name:
            candidates.append(self._vendor_dir(request) / identifier.composer_name)

        found = self._first_existing(dict.fromkeys(candidates), request, trail)
        if found is None:
            self._suggest_similar(identifier.key, ext_dirs, trail)
        else:
            logger.debug(f"[paths:{self.IDENTIFIER}] {identifier.key} -> {found}")
        return found

    def _suggest_similar(self, key: str, ext_dirs: list[Path], trail: Trail) -> None:
        wanted = key.lower()
        for ext_dir in ext_dirs:
            if not self.probe.is_dir(ext_dir):
                continue
            for child in self.probe.glob_dirs(ext_dir, "*"):
                if child.name.lower() == wanted:
                    trail.suggest(child)
