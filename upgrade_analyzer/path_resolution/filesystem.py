"""Filesystem collaborators for path resolution.

- FilesystemProbe: read-only filesystem access used by strategies
- ComposerManifestReader: parses composer.json into the few keys we need
- InstallationTypeDetector: guesses the installation layout from markers

None of these ever write to disk.
"""

import json
import logging
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any
from typing import Protocol
from typing import runtime_checkable

from .enums import InstallationType

logger = logging.getLogger(__name__)

DEFAULT_WEB_DIR = "public"
DEFAULT_VENDOR_DIR = "vendor"
TYPO3CONF_DIR_NAME = "typo3conf"


@runtime_checkable
class FilesystemProbe(Protocol):
    """Read-only filesystem access.

    ``read_text`` raises PermissionError and FileNotFoundError distinctly;
    the predicates never raise.
    """

    def exists(self, path: Path) -> bool: ...

    def is_dir(self, path: Path) -> bool: ...

    def is_file(self, path: Path) -> bool: ...

    def is_symlink(self, path: Path) -> bool: ...

    def read_text(self, path: Path) -> str: ...

    def mtime(self, path: Path) -> float | None: ...

    def glob_dirs(self, path: Path, pattern: str) -> list[Path]: ...


class LocalFilesystemProbe:
    """FilesystemProbe backed by pathlib."""

    def exists(self, path: Path) -> bool:
        try:
            return path.exists()
        except OSError:
            return False

    def is_dir(self, path: Path) -> bool:
        try:
            return path.is_dir()
        except OSError:
            return False

    def is_file(self, path: Path) -> bool:
        try:
            return path.is_file()
        except OSError:
            return False

    def is_symlink(self, path: Path) -> bool:
        try:
            return path.is_symlink()
        except OSError:
            return False

    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def mtime(self, path: Path) -> float | None:
        try:
            return path.stat().st_mtime
        except OSError:
            return None

    def glob_dirs(self, path: Path, pattern: str) -> list[Path]:
        try:
            return sorted(p for p in path.glob(pattern) if p.is_dir())
        except OSError:
            return []


@dataclass(frozen=True)
class ComposerManifest:
    """The parts of composer.json that influence directory layout."""

    path: Path
    name: str | None = None
    web_dir: str = DEFAULT_WEB_DIR
    vendor_dir: str = DEFAULT_VENDOR_DIR
    require: dict[str, str] = field(default_factory=dict)

    @property
    def has_custom_web_dir(self) -> bool:
        return self.web_dir != DEFAULT_WEB_DIR

    @property
    def has_custom_vendor_dir(self) -> bool:
        return self.vendor_dir != DEFAULT_VENDOR_DIR

    @property
    def typo3_version_constraint(self) -> str | None:
        for package in ("typo3/cms-core", "typo3/cms"):
            if package in self.require:
                return self.require[package]
        return None

    @classmethod
    def from_data(cls, path: Path, data: dict[str, Any]) -> "ComposerManifest":
        extra = data.get("extra")
        typo3_extra = extra.get("typo3/cms") if isinstance(extra, dict) else None
        config = data.get("config")
        require = data.get("require")

        web_dir = typo3_extra.get("web-dir") if isinstance(typo3_extra, dict) else None
        vendor_dir = config.get("vendor-dir") if isinstance(config, dict) else None

        return cls(
            path=path,
            name=data.get("name"),
            web_dir=str(web_dir).strip("/") if web_dir else DEFAULT_WEB_DIR,
            vendor_dir=str(vendor_dir).strip("/") if vendor_dir else DEFAULT_VENDOR_DIR,
            require={str(k): str(v) for k, v in require.items()} if isinstance(require, dict) else {},
        )


class ComposerManifestReader:
    """Reads composer.json from an installation root.

    An absent manifest means "use convention defaults" and is not an error.
    Unreadable or malformed manifests are logged and treated as absent.
    Parsed manifests are memoised per path and re-read when the mtime changes.
    """

    MANIFEST_NAME = "composer.json"

    def __init__(self, probe: FilesystemProbe | None = None):
        self.probe = probe or LocalFilesystemProbe()
        self._memo: dict[Path, tuple[float | None, ComposerManifest | None]] = {}

    def read(self, installation_path: Path) -> ComposerManifest | None:
        manifest_path = Path(installation_path) / self.MANIFEST_NAME
        if not self.probe.is_file(manifest_path):
            return None

        mtime = self.probe.mtime(manifest_path)
        cached = self._memo.get(manifest_path)
        if cached is not None and mtime is not None and cached[0] == mtime:
            return cached[1]

        manifest = self._parse(manifest_path)
        self._memo[manifest_path] = (mtime, manifest)
        return manifest

    def _parse(self, manifest_path: Path) -> ComposerManifest | None:
        try:
            data = json.loads(self.probe.read_text(manifest_path))
        except PermissionError:
            logger.warning(f"Permission denied reading {manifest_path}; using layout defaults")
            return None
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not parse {manifest_path}: {e}; using layout defaults")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Unexpected composer.json structure in {manifest_path}; using layout defaults")
            return None

        return ComposerManifest.from_data(manifest_path, data)

    def clear(self) -> None:
        self._memo.clear()


class InstallationTypeDetector:
    """Guess the installation layout from directory markers.

    Order:
    1. composer.json with a non-default web-dir or vendor-dir -> COMPOSER_CUSTOM
    2. composer.json (or vendor/ next to public/) -> COMPOSER_STANDARD
    3. typo3conf/ or typo3_src at the root -> LEGACY_SOURCE
    4. Otherwise COMPOSER_STANDARD (the most common layout)
    """

    def __init__(self, manifest_reader: ComposerManifestReader | None = None, probe: FilesystemProbe | None = None):
        self.probe = probe or LocalFilesystemProbe()
        self.manifest_reader = manifest_reader or ComposerManifestReader(self.probe)

    def detect(self, installation_path: Path) -> InstallationType:
        root = Path(installation_path)
        manifest = self.manifest_reader.read(root)

        if manifest is not None:
            if manifest.has_custom_web_dir or manifest.has_custom_vendor_dir:
                detected = InstallationType.COMPOSER_CUSTOM
            else:
                detected = InstallationType.COMPOSER_STANDARD
        elif self.probe.is_dir(root / DEFAULT_VENDOR_DIR) and self.probe.is_dir(root / DEFAULT_WEB_DIR):
            detected = InstallationType.COMPOSER_STANDARD
        elif self.probe.is_dir(root / TYPO3CONF_DIR_NAME) or self.probe.exists(root / "typo3_src"):
            detected = InstallationType.LEGACY_SOURCE
        else:
            detected = InstallationType.COMPOSER_STANDARD

        logger.debug(f"[paths:detect] {root} -> {detected.value}")
        return detected
