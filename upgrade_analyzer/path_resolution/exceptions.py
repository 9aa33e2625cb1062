"""Exception taxonomy for path resolution.

Construction and registration errors are raised to the caller immediately.
Runtime failures (PathResolutionError and subclasses) never escape the
PathResolutionService: they are handed to the ErrorRecoveryManager and turned
into NOT_FOUND or ERROR responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Any

if TYPE_CHECKING:
    from .models import PathResolutionRequest

# Recovery technique names understood by the ErrorRecoveryManager
ALTERNATIVE_PATH_SEARCH = "alternative_path_search"
DEFAULT_PATH_FALLBACK = "default_path_fallback"
CUSTOM_PATH_SEARCH = "custom_path_search"
CONFIGURATION_UPDATE_SUGGESTION = "configuration_update_suggestion"
INSTALLATION_TYPE_REDETECTION = "installation_type_redetection"

DEFAULT_RECOVERY_CHAIN = (
    ALTERNATIVE_PATH_SEARCH,
    DEFAULT_PATH_FALLBACK,
    CUSTOM_PATH_SEARCH,
    CONFIGURATION_UPDATE_SUGGESTION,
    INSTALLATION_TYPE_REDETECTION,
)


class ConstructionError(ValueError):
    """Raised when a request cannot be built (missing or incompatible fields)."""


@dataclass(frozen=True)
class RecoveryStep:
    """A named recovery technique with its parameters."""

    name: str
    parameters: dict[str, Any] = field(default_factory=dict)


class PathResolutionError(Exception):
    """Generic strategy failure.

    Attributes:
        error_code: Stable machine-readable code
        retryable: Whether error recovery should be attempted
        severity: "error" or "warning"
        request: Request being resolved when the error occurred (if known)
        context: Structured diagnostic context
        recovery_strategies: Ordered recovery techniques to try
    """

    error_code = "PATH_RESOLUTION_ERROR"
    severity = "error"

    def __init__(
        self,
        message: str,
        *,
        request: PathResolutionRequest | None = None,
        context: dict[str, Any] | None = None,
        retryable: bool = True,
        recovery_strategies: list[RecoveryStep] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.request = request
        self.context: dict[str, Any] = dict(context or {})
        self.retryable = retryable
        self.recovery_strategies: list[RecoveryStep] = list(recovery_strategies or [])

    def add_context(self, key: str, value: Any) -> PathResolutionError:
        self.context[key] = value
        return self

    def add_recovery_strategy(self, name: str, parameters: dict[str, Any] | None = None) -> PathResolutionError:
        self.recovery_strategies.append(RecoveryStep(name, dict(parameters or {})))
        return self


class NoCompatibleStrategyError(PathResolutionError):
    """No registered strategy applies to the request. Terminal."""

    error_code = "NO_COMPATIBLE_STRATEGY"

    def __init__(self, message: str, **kwargs: Any):
        kwargs["retryable"] = False
        super().__init__(message, **kwargs)


class StrategyConflictError(PathResolutionError):
    """A strategy with the same identifier is already registered."""

    error_code = "STRATEGY_CONFLICT"

    def __init__(self, message: str, **kwargs: Any):
        kwargs["retryable"] = False
        super().__init__(message, **kwargs)


class PathNotFoundError(PathResolutionError):
    """A strategy ran but found nothing.

    Carries every path the strategy tried plus any existing paths it noticed
    on the way, and enables the full recovery chain by default.
    """

    error_code = "PATH_NOT_FOUND"
    severity = "warning"

    def __init__(
        self,
        message: str,
        *,
        attempted_paths: list[Path] | None = None,
        suggested_paths: list[Path] | None = None,
        warnings: list[str] | None = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)
        self.attempted_paths: list[Path] = list(attempted_paths or [])
        self.suggested_paths: list[Path] = list(suggested_paths or [])
        self.warnings: list[str] = list(warnings or [])
        if not self.recovery_strategies:
            for name in DEFAULT_RECOVERY_CHAIN:
                self.add_recovery_strategy(name)
