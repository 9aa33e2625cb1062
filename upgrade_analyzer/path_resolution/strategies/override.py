"""Explicit per-path-type overrides from PathConfiguration.custom_paths."""

from pathlib import Path

from ..enums import InstallationType
from ..enums import PathType
from ..enums import StrategyPriority
from ..models import PathResolutionRequest
from .base import PathResolutionStrategy
from .base import Trail


class CustomPathOverrideStrategy(PathResolutionStrategy):
    """Use the configured override for the requested path type.

    Overrides are keyed by path-type value (``vendor_dir``, ``web_dir`` ...).
    Extension overrides may contain a ``{key}`` placeholder.
    """

    IDENTIFIER = "custom_path_override_strategy"
    PATH_TYPES = frozenset(PathType)
    INSTALLATION_TYPES = frozenset(InstallationType)
    PRIORITIES = {installation_type: StrategyPriority.OVERRIDE for installation_type in InstallationType}
    REQUIRED_PROBE_METHODS = ("exists", "is_dir", "is_file")

    def can_handle(self, request: PathResolutionRequest) -> bool:
        if not super().can_handle(request):
            return False
        if request.path_type.requires_extension_identifier and request.extension_identifier is None:
            return False
        return request.path_configuration.get_custom_path(request.path_type.value) is not None

    def _locate(self, request: PathResolutionRequest, layout: InstallationType, trail: Trail) -> Path | None:
        override = request.path_configuration.get_custom_path(request.path_type.value)
        if override is None:
            return None
        if request.extension_identifier is not None:
            override = override.replace("{key}", request.extension_identifier.key)
        candidate = self._resolve_relative(request.installation_path, override)
        return self._first_existing([candidate], request, trail, expect_file=request.path_type.is_file)
