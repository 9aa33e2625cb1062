"""Error recovery for failed resolutions.

Given a PathResolutionError, run its recovery techniques in order until one
produces something actionable, then fall through to the request's own
fallback strategies. A recovery "success" is a NOT_FOUND response carrying
alternative paths or suggestions, not necessarily the exact answer.
"""

import json
import logging
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import Any

from .enums import InstallationType
from .enums import PathType
from .exceptions import ALTERNATIVE_PATH_SEARCH
from .exceptions import CONFIGURATION_UPDATE_SUGGESTION
from .exceptions import CUSTOM_PATH_SEARCH
from .exceptions import DEFAULT_PATH_FALLBACK
from .exceptions import DEFAULT_RECOVERY_CHAIN
from .exceptions import INSTALLATION_TYPE_REDETECTION
from .exceptions import PathResolutionError
from .exceptions import RecoveryStep
from .filesystem import TYPO3CONF_DIR_NAME
from .filesystem import FilesystemProbe
from .filesystem import InstallationTypeDetector
from .filesystem import LocalFilesystemProbe
from .models import PathResolutionMetadata
from .models import PathResolutionRequest
from .models import PathResolutionResponse
from .registry import PathResolutionStrategyRegistry

logger = logging.getLogger(__name__)

# Extension locations seen across TYPO3 versions and hosting setups
HISTORICAL_EXTENSION_LOCATIONS = (
    "public/typo3conf/ext",
    "web/typo3conf/ext",
    "typo3conf/ext",
    "app/public/typo3conf/ext",
    "app/web/typo3conf/ext",
    "htdocs/typo3conf/ext",
)

# Sub-roots scanned for a typo3conf directory
CUSTOM_SEARCH_ROOTS = (".", "app", "htdocs", "public_html", "public", "web")

RECOVERY_CHAIN = "error_recovery"


class ErrorRecoveryManager:
    """Turns resolution exceptions into NOT_FOUND or ERROR responses."""

    def __init__(
        self,
        registry: PathResolutionStrategyRegistry | None = None,
        probe: FilesystemProbe | None = None,
        detector: InstallationTypeDetector | None = None,
    ):
        self.registry = registry
        self.probe = probe or LocalFilesystemProbe()
        self.detector = detector or InstallationTypeDetector(probe=self.probe)
        self._techniques: dict[str, Callable[[PathResolutionError, PathResolutionRequest, dict[str, Any]], Any]] = {
            ALTERNATIVE_PATH_SEARCH: self._alternative_path_search,
            DEFAULT_PATH_FALLBACK: self._default_path_fallback,
            CUSTOM_PATH_SEARCH: self._custom_path_search,
            CONFIGURATION_UPDATE_SUGGESTION: self._configuration_update_suggestion,
            INSTALLATION_TYPE_REDETECTION: self._installation_type_redetection,
        }

    def attempt_recovery(self, error: PathResolutionError, request: PathResolutionRequest) -> PathResolutionResponse:
        """Recover from a failed resolution.

        Args:
            error: The failure raised by a strategy or the registry
            request: The request being resolved

        Returns:
            NOT_FOUND with alternatives/suggestions when recovery produced
            something actionable, the fallback strategy's SUCCESS response,
            or a terminal ERROR response
        """
        logger.info(
            f"Attempting recovery from {error.error_code} for {request.path_type.value}",
            extra={
                "event": "path_resolution.recovery_attempted",
                "error_code": error.error_code,
                "retryable": error.retryable,
                "path_type": request.path_type.value,
            },
        )

        if not error.retryable:
            return self._failure(error, request, [], "non_retryable_error")

        # A retryable error without its own techniques gets the full chain
        steps = error.recovery_strategies or [RecoveryStep(name) for name in DEFAULT_RECOVERY_CHAIN]
        attempted: list[str] = []
        for step in steps:
            technique = self._techniques.get(step.name)
            if technique is None:
                logger.debug(f"Unknown recovery technique skipped: {step.name}")
                continue
            attempted.append(step.name)
            try:
                result = technique(error, request, dict(step.parameters))
            except OSError as e:
                logger.warning(f"Recovery technique {step.name} failed: {e}")
                continue
            if result is not None:
                alternatives, warnings = result
                logger.info(
                    f"Recovery via {step.name} produced {len(alternatives)} alternative(s)",
                    extra={
                        "event": "path_resolution.recovery_succeeded",
                        "technique": step.name,
                        "alternatives": len(alternatives),
                    },
                )
                return self._not_found(error, request, step.name, alternatives, warnings, attempted)

        if request.fallback_strategies:
            response = self._try_fallback_strategies(error, request, attempted)
            if response is not None:
                return response

        logger.error(
            f"All recovery attempts failed for {request.path_type.value}",
            extra={
                "event": "path_resolution.recovery_failed",
                "error_code": error.error_code,
                "attempts": len(attempted),
            },
        )
        return self._failure(error, request, attempted, "all_recovery_attempts_failed")

    # Techniques return (alternatives, warnings) or None when they found nothing

    def _alternative_path_search(
        self, error: PathResolutionError, request: PathResolutionRequest, parameters: dict[str, Any]
    ) -> tuple[list[Path], list[str]] | None:
        root = request.installation_path
        alternatives = [p for p in getattr(error, "suggested_paths", []) if self.probe.exists(p)]

        if request.extension_identifier is not None:
            locations = parameters.get("locations", HISTORICAL_EXTENSION_LOCATIONS)
            key = request.extension_identifier.key
            alternatives.extend(
                root / location / key for location in locations if self.probe.is_dir(root / location / key)
            )

        alternatives = list(dict.fromkeys(alternatives))
        if not alternatives:
            return None
        return alternatives, ["Alternative paths found through error recovery"]

    def _default_path_fallback(
        self, error: PathResolutionError, request: PathResolutionRequest, parameters: dict[str, Any]
    ) -> tuple[list[Path], list[str]] | None:
        root = request.installation_path
        key = request.extension_identifier.key if request.extension_identifier else None
        alternatives = []
        for location in request.path_type.default_locations():
            if "{key}" in location:
                if key is None:
                    continue
                location = location.format(key=key)
            candidate = root / location
            exists = self.probe.is_file(candidate) if request.path_type.is_file else self.probe.is_dir(candidate)
            if exists:
                alternatives.append(candidate)
        if not alternatives:
            return None
        return alternatives, ["Using default fallback paths"]

    def _custom_path_search(
        self, error: PathResolutionError, request: PathResolutionRequest, parameters: dict[str, Any]
    ) -> tuple[list[Path], list[str]] | None:
        root = request.installation_path
        search_roots = parameters.get("roots", CUSTOM_SEARCH_ROOTS)
        conf_dirs = [
            root / sub_root / TYPO3CONF_DIR_NAME
            for sub_root in search_roots
            if self.probe.is_dir(root / sub_root / TYPO3CONF_DIR_NAME)
        ]
        conf_dirs = list(dict.fromkeys(conf_dirs))

        alternatives = [p for p in (self._target_in_conf_dir(request, conf) for conf in conf_dirs) if p is not None]
        alternatives = list(dict.fromkeys(alternatives))
        if not alternatives:
            return None
        return alternatives, ["Custom installation paths found"]

    def _target_in_conf_dir(self, request: PathResolutionRequest, conf_dir: Path) -> Path | None:
        path_type = request.path_type
        if path_type == PathType.TYPO3CONF_DIR:
            return conf_dir
        if path_type == PathType.WEB_DIR:
            return conf_dir.parent
        if path_type == PathType.PACKAGE_STATES:
            candidate = conf_dir / "PackageStates.php"
            return candidate if self.probe.is_file(candidate) else None
        if path_type == PathType.EXTENSION and request.extension_identifier is not None:
            candidate = conf_dir / "ext" / request.extension_identifier.key
            return candidate if self.probe.is_dir(candidate) else None
        return None

    def _configuration_update_suggestion(
        self, error: PathResolutionError, request: PathResolutionRequest, parameters: dict[str, Any]
    ) -> tuple[list[Path], list[str]] | None:
        config = request.path_configuration
        suggestions = []
        if not config.custom_paths:
            suggestions.append(
                f"Consider adding a custom path for '{request.path_type.value}' to path_configuration.custom_paths"
            )
        if request.path_type == PathType.EXTENSION and not config.search_directories:
            suggestions.append("Consider adding extension search directories to path_configuration.search_directories")
        if not suggestions:
            return None
        return [], suggestions

    def _installation_type_redetection(
        self, error: PathResolutionError, request: PathResolutionRequest, parameters: dict[str, Any]
    ) -> tuple[list[Path], list[str]] | None:
        if request.installation_type == InstallationType.AUTO_DETECT:
            return None
        detected = self.detector.detect(request.installation_path)
        if detected != request.installation_type:
            return [], [
                f"Installation looks like {detected.value}, not {request.installation_type.value}; "
                f"consider the auto_detect installation type"
            ]
        return [], ["Consider using the auto_detect installation type for automatic detection"]

    # Request fallback strategies

    def _try_fallback_strategies(
        self, error: PathResolutionError, request: PathResolutionRequest, attempted: list[str]
    ) -> PathResolutionResponse | None:
        if self.registry is None:
            return None

        for fallback in sorted(request.fallback_strategies, key=lambda f: -f.priority):
            strategy = self.registry.get(fallback.strategy)
            if strategy is None:
                logger.warning(f"Fallback strategy not registered: {fallback.strategy}")
                continue
            attempted.append(fallback.strategy)
            if request.path_type not in strategy.supported_path_types() or not strategy.can_handle(request):
                continue
            try:
                response = strategy.resolve(request)
            except PathResolutionError as e:
                logger.debug(f"Fallback strategy {fallback.strategy} failed: {e}")
                continue
            metadata = replace(
                response.metadata,
                strategy_chain=(*response.metadata.strategy_chain, RECOVERY_CHAIN),
                fallback_reason="fallback_strategy",
                recovery_attempts=tuple(attempted),
            )
            return replace(response, metadata=metadata)
        return None

    # Response construction

    def _metadata(
        self,
        error: PathResolutionError,
        request: PathResolutionRequest,
        used: str,
        reason: str,
        attempted: list[str],
    ) -> PathResolutionMetadata:
        strategy = error.context.get("strategy")
        chain = (strategy, RECOVERY_CHAIN) if strategy else (RECOVERY_CHAIN,)
        return PathResolutionMetadata(
            path_type=request.path_type,
            installation_type=request.installation_type,
            used_strategy=used,
            attempted_paths=tuple(getattr(error, "attempted_paths", [])),
            strategy_chain=chain,
            fallback_reason=reason,
            recovery_attempts=tuple(attempted),
        )

    def _not_found(
        self,
        error: PathResolutionError,
        request: PathResolutionRequest,
        technique: str,
        alternatives: list[Path],
        warnings: list[str],
        attempted: list[str],
    ) -> PathResolutionResponse:
        metadata = self._metadata(error, request, f"error_recovery_{technique}", technique, attempted)
        all_warnings = [*getattr(error, "warnings", []), error.message, *warnings]
        return PathResolutionResponse.not_found(
            request.path_type, metadata, alternative_paths=alternatives, warnings=list(dict.fromkeys(all_warnings))
        )

    def _failure(
        self, error: PathResolutionError, request: PathResolutionRequest, attempted: list[str], reason: str
    ) -> PathResolutionResponse:
        errors = [error.message]
        if error.context:
            errors.append(f"Context: {json.dumps(error.context, default=str, sort_keys=True)}")
        warnings = list(getattr(error, "warnings", []))
        if attempted:
            warnings.append(f"All error recovery attempts failed ({len(attempted)} technique(s) tried)")
        metadata = self._metadata(error, request, "error_recovery_failed", reason, attempted)
        return PathResolutionResponse.error(request.path_type, metadata, errors=errors, warnings=warnings)


def wrap_unexpected(
    error: Exception, request: PathResolutionRequest, strategy: str | None = None
) -> PathResolutionError:
    """Wrap an unexpected strategy exception so it can be recovered from."""
    wrapped = PathResolutionError(
        f"Unexpected error during resolution: {error}",
        request=request,
        context={"exception": type(error).__name__, **({"strategy": strategy} if strategy else {})},
        retryable=True,
    )
    wrapped.__cause__ = error
    return wrapped

