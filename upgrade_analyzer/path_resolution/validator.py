"""Pre-flight request validation.

Runs before any strategy is selected. Errors block resolution; warnings are
carried onto the eventual response.
"""

import logging
import os
from collections.abc import Callable
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any

from .filesystem import FilesystemProbe
from .filesystem import LocalFilesystemProbe
from .models import PathResolutionRequest

logger = logging.getLogger(__name__)

MAX_DEPTH_WARNING_THRESHOLD = 50

# Presence of any of these marks a directory as a TYPO3 installation
TYPO3_INDICATORS = ("typo3conf", "typo3", "fileadmin", "public/typo3", "web/typo3", "composer.json")


@dataclass(frozen=True)
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class PathResolutionValidator:
    """Validates requests without touching anything beyond the installation root."""

    def __init__(self, probe: FilesystemProbe | None = None):
        self.probe = probe or LocalFilesystemProbe()
        self._rules: dict[str, Callable[[Path, Mapping[str, Any]], list[str]]] = {
            "min_path_length": self._rule_min_path_length,
            "required_subdirs": self._rule_required_subdirs,
            "forbidden_paths": self._rule_forbidden_paths,
        }

    def validate(self, request: PathResolutionRequest) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        path_ok = self._validate_installation_path(request.installation_path, errors, warnings)
        self._validate_path_type(request, path_ok, errors)
        self._validate_configuration(request, errors, warnings)

        for rule in request.validation_rules:
            handler = self._rules.get(rule.name)
            if handler is None:
                warnings.append(f"Unknown validation rule ignored: {rule.name}")
                continue
            errors.extend(handler(request.installation_path, rule.parameters))

        logger.debug(
            f"[paths:validate] {request.path_type.value} errors={len(errors)} warnings={len(warnings)}",
            extra={"event": "path_resolution.validated", "errors": len(errors), "warnings": len(warnings)},
        )
        return ValidationResult(errors, warnings)

    def _validate_installation_path(self, path: Path, errors: list[str], warnings: list[str]) -> bool:
        if not self.probe.exists(path):
            errors.append(f"Installation path does not exist: {path}")
            return False

        if not os.access(path, os.R_OK):
            errors.append(f"Installation path is not readable: {path}")

        if not self.probe.is_dir(path):
            warnings.append(f"Installation path is not a directory: {path}")
        elif not any(self.probe.exists(path / indicator) for indicator in TYPO3_INDICATORS):
            warnings.append(f"Path does not appear to be a TYPO3 installation: {path}")
        return True

    def _validate_path_type(self, request: PathResolutionRequest, path_ok: bool, errors: list[str]) -> None:
        path_type = request.path_type
        for rule in path_type.required_validation_rules():
            if rule == "extension_identifier_required":
                if request.extension_identifier is None:
                    errors.append(f"Extension identifier is required for path type: {path_type.value}")
            elif not path_ok:
                continue
            elif rule == "directory_exists":
                if not self.probe.is_dir(request.installation_path):
                    errors.append(f"Installation path must be a directory for path type: {path_type.value}")
            elif rule == "readable":
                if not os.access(request.installation_path, os.R_OK):
                    errors.append(f"Installation path must be readable for path type: {path_type.value}")

        if not path_type.is_compatible_with(request.installation_type):
            errors.append(
                f"Path type '{path_type.value}' is not compatible with "
                f"installation type '{request.installation_type.value}'"
            )

    def _validate_configuration(self, request: PathResolutionRequest, errors: list[str], warnings: list[str]) -> None:
        config = request.path_configuration

        if config.max_depth < 1:
            errors.append("Max depth must be at least 1")
        elif config.max_depth > MAX_DEPTH_WARNING_THRESHOLD:
            warnings.append(f"Max depth is very high ({config.max_depth}), this may impact performance")

        if any(not str(d).strip() for d in config.search_directories):
            warnings.append("Empty search directory found in configuration")
        if any(not str(p).strip() for p in config.exclude_patterns):
            warnings.append("Empty exclude pattern found in configuration")

        if config.follow_symlinks and not config.validate_exists:
            warnings.append("Following symlinks without validating existence may lead to unexpected results")

    @staticmethod
    def _rule_min_path_length(path: Path, parameters: Mapping[str, Any]) -> list[str]:
        minimum = int(parameters.get("length", 5))
        if len(str(path)) < minimum:
            return [f"Installation path is too short (minimum {minimum} characters required)"]
        return []

    def _rule_required_subdirs(self, path: Path, parameters: Mapping[str, Any]) -> list[str]:
        return [
            f"Required subdirectory not found: {name}"
            for name in parameters.get("dirs", [])
            if not self.probe.is_dir(path / name)
        ]

    @staticmethod
    def _rule_forbidden_paths(path: Path, parameters: Mapping[str, Any]) -> list[str]:
        return [
            f"Installation path contains forbidden path segment: {segment}"
            for segment in parameters.get("paths", [])
            if segment and segment in str(path)
        ]
