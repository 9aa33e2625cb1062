"""Shared plumbing for path resolution strategies.

A strategy encodes a single filesystem convention. Subclasses declare what
they support and implement ``_locate``; the base class handles priority
lookup, environment checks, layout detection for AUTO_DETECT requests,
candidate probing and response construction.

Every candidate a strategy looks at is recorded in a ``Trail`` whether it
exists or not. When nothing is found the trail is raised as a
PathNotFoundError so error recovery can take over.
"""

import logging
from abc import ABC
from abc import abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

from ..enums import InstallationType
from ..enums import PathType
from ..enums import StrategyPriority
from ..exceptions import PathNotFoundError
from ..filesystem import DEFAULT_VENDOR_DIR
from ..filesystem import DEFAULT_WEB_DIR
from ..filesystem import TYPO3CONF_DIR_NAME
from ..filesystem import ComposerManifestReader
from ..filesystem import FilesystemProbe
from ..filesystem import InstallationTypeDetector
from ..filesystem import LocalFilesystemProbe
from ..models import PathResolutionMetadata
from ..models import PathResolutionRequest
from ..models import PathResolutionResponse

logger = logging.getLogger(__name__)


@dataclass
class Trail:
    """Everything a strategy tried while resolving one request."""

    attempted: list[Path] = field(default_factory=list)
    suggestions: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def attempt(self, path: Path) -> None:
        if path not in self.attempted:
            self.attempted.append(path)

    def suggest(self, path: Path) -> None:
        if path not in self.suggestions:
            self.suggestions.append(path)

    def warn(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)


class PathResolutionStrategy(ABC):
    """Base class for resolution strategies.

    Class attributes:
        IDENTIFIER: Stable identifier (registry key and tie-breaker)
        PATH_TYPES: Path types this strategy resolves
        INSTALLATION_TYPES: Installation types this strategy supports
        PRIORITIES: Priority per supported installation type
        REQUIRED_PROBE_METHODS: Probe callables needed by ``_locate``
    """

    IDENTIFIER: str = ""
    PATH_TYPES: frozenset[PathType] = frozenset()
    INSTALLATION_TYPES: frozenset[InstallationType] = frozenset()
    PRIORITIES: dict[InstallationType, StrategyPriority] = {}
    REQUIRED_PROBE_METHODS: tuple[str, ...] = ("exists", "is_dir")

    def __init__(
        self,
        probe: FilesystemProbe | None = None,
        manifest_reader: ComposerManifestReader | None = None,
        detector: InstallationTypeDetector | None = None,
    ):
        self.probe = probe or LocalFilesystemProbe()
        self.manifest_reader = manifest_reader or ComposerManifestReader(self.probe)
        self.detector = detector or InstallationTypeDetector(self.manifest_reader, self.probe)

    # Introspection

    def identifier(self) -> str:
        return self.IDENTIFIER

    def supported_path_types(self) -> set[PathType]:
        return set(self.PATH_TYPES)

    def supported_installation_types(self) -> set[InstallationType]:
        return set(self.INSTALLATION_TYPES)

    def priority(self, path_type: PathType, installation_type: InstallationType) -> int:
        if path_type not in self.PATH_TYPES:
            return StrategyPriority.LOWEST
        return self.PRIORITIES.get(installation_type, StrategyPriority.LOWEST)

    def can_handle(self, request: PathResolutionRequest) -> bool:
        """Request-specific refinement beyond type compatibility."""
        return request.path_type in self.PATH_TYPES and request.installation_type in self.INSTALLATION_TYPES

    def validate_environment(self) -> list[str]:
        """Return problems that would prevent this strategy from running."""
        errors = []
        for name in self.REQUIRED_PROBE_METHODS:
            if not callable(getattr(self.probe, name, None)):
                errors.append(f"Filesystem probe does not provide {name}()")
        return errors

    # Resolution

    def resolve(self, request: PathResolutionRequest) -> PathResolutionResponse:
        """Resolve the request.

        Returns:
            SUCCESS response with the resolved path

        Raises:
            PathNotFoundError: No candidate matched; carries attempted and
                suggested paths
        """
        trail = Trail()
        layout = self._effective_layout(request, trail)

        logger.debug(
            f"[paths:{self.IDENTIFIER}] resolving {request.path_type.value} "
            f"in {request.installation_path} ({layout.value})"
        )

        resolved = self._locate(request, layout, trail)

        if resolved is None:
            raise PathNotFoundError(
                self._not_found_message(request),
                attempted_paths=trail.attempted,
                suggested_paths=trail.suggestions,
                warnings=trail.warnings,
                request=request,
                context={
                    "strategy": self.IDENTIFIER,
                    "installation_path": str(request.installation_path),
                    "layout": layout.value,
                },
            )

        metadata = PathResolutionMetadata(
            path_type=request.path_type,
            installation_type=request.installation_type,
            used_strategy=self.IDENTIFIER,
            strategy_priority=int(self.priority(request.path_type, request.installation_type)),
            attempted_paths=tuple(trail.attempted),
            strategy_chain=(self.IDENTIFIER,),
        )
        alternatives = [p for p in trail.suggestions if p != resolved]
        return PathResolutionResponse.success(
            request.path_type, resolved, metadata, alternative_paths=alternatives, warnings=trail.warnings
        )

    @abstractmethod
    def _locate(self, request: PathResolutionRequest, layout: InstallationType, trail: Trail) -> Path | None:
        """Return the resolved path, or None when nothing matched."""

    def _not_found_message(self, request: PathResolutionRequest) -> str:
        label = request.path_type.value.replace("_", " ")
        return f"{label.capitalize()} not found in {request.installation_path}"

    def _effective_layout(self, request: PathResolutionRequest, trail: Trail) -> InstallationType:
        if request.installation_type != InstallationType.AUTO_DETECT:
            return request.installation_type
        detected = self.detector.detect(request.installation_path)
        trail.warn(f"Installation type detected as {detected.value}")
        return detected

    # Candidate helpers

    def _first_existing(
        self,
        candidates: Iterable[Path],
        request: PathResolutionRequest,
        trail: Trail,
        *,
        expect_file: bool = False,
    ) -> Path | None:
        """Return the first acceptable existing candidate.

        With ``validate_exists`` disabled the first non-excluded candidate is
        returned even when it is missing on disk.
        """
        config = request.path_configuration
        unverified: Path | None = None

        for candidate in candidates:
            if config.is_excluded(candidate):
                trail.warn(f"Skipped excluded path: {candidate}")
                continue
            trail.attempt(candidate)

            if self.probe.is_symlink(candidate) and not config.follow_symlinks:
                trail.warn(f"Skipped symlink (follow_symlinks disabled): {candidate}")
                continue

            found = self.probe.is_file(candidate) if expect_file else self.probe.is_dir(candidate)
            if found:
                return candidate
            if unverified is None:
                unverified = candidate

        if unverified is not None and not config.validate_exists:
            trail.warn(f"Path not verified to exist: {unverified}")
            return unverified
        return None

    def _resolve_relative(self, root: Path, value: str) -> Path:
        candidate = Path(value).expanduser()
        return candidate if candidate.is_absolute() else root / candidate

    def _web_root(self, request: PathResolutionRequest, layout: InstallationType, trail: Trail) -> Path:
        """Web root for the installation.

        Order: ``web-dir`` custom path, composer.json ``extra.typo3/cms.web-dir``,
        the installation root for legacy layouts, then ``public``.
        """
        root = request.installation_path
        override = request.path_configuration.get_custom_path("web-dir")
        if override:
            return self._resolve_relative(root, override)

        manifest_path = root / ComposerManifestReader.MANIFEST_NAME
        trail.attempt(manifest_path)
        manifest = self.manifest_reader.read(root)
        if manifest is not None:
            return root / manifest.web_dir
        if layout == InstallationType.LEGACY_SOURCE:
            return root
        return root / DEFAULT_WEB_DIR

    def _vendor_dir(self, request: PathResolutionRequest) -> Path:
        root = request.installation_path
        override = request.path_configuration.get_custom_path("vendor-dir")
        if override:
            return self._resolve_relative(root, override)
        manifest = self.manifest_reader.read(root)
        return root / (manifest.vendor_dir if manifest else DEFAULT_VENDOR_DIR)

    def _typo3conf_candidates(
        self, request: PathResolutionRequest, layout: InstallationType, trail: Trail
    ) -> list[Path]:
        """Configuration directory candidates, computed location first then legacy root."""
        root = request.installation_path
        candidates = []
        override = request.path_configuration.get_custom_path("typo3conf-dir")
        if override:
            candidates.append(self._resolve_relative(root, override))
        candidates.append(self._web_root(request, layout, trail) / TYPO3CONF_DIR_NAME)
        candidates.append(root / TYPO3CONF_DIR_NAME)
        return list(dict.fromkeys(candidates))
