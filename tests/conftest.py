"""Shared fixtures: on-disk TYPO3 installations in the three supported layouts."""

import json
from pathlib import Path

import pytest

from upgrade_analyzer.path_resolution.enums import InstallationType
from upgrade_analyzer.path_resolution.enums import PathType
from upgrade_analyzer.path_resolution.models import ExtensionIdentifier
from upgrade_analyzer.path_resolution.models import PathConfiguration
from upgrade_analyzer.path_resolution.models import PathResolutionRequest
from upgrade_analyzer.paths import create_path_resolution_service
from upgrade_analyzer.settings import PathResolutionSettings


def write_composer_json(root: Path, data: dict) -> Path:
    manifest = root / "composer.json"
    manifest.write_text(json.dumps(data), encoding="utf-8")
    return manifest


def make_dirs(root: Path, *relative: str) -> None:
    for rel in relative:
        (root / rel).mkdir(parents=True, exist_ok=True)


def touch(root: Path, *relative: str) -> None:
    for rel in relative:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("", encoding="utf-8")


@pytest.fixture
def composer_standard(tmp_path: Path) -> Path:
    """Composer layout with the default public web root."""
    root = tmp_path / "standard"
    root.mkdir()
    write_composer_json(root, {"name": "acme/site", "require": {"typo3/cms-core": "^11.5"}})
    make_dirs(root, "vendor/composer", "public/typo3conf/ext/news", "public/typo3conf/ext/blog")
    touch(root, "vendor/composer/installed.json", "public/typo3conf/PackageStates.php")
    return root


@pytest.fixture
def composer_custom(tmp_path: Path) -> Path:
    """Composer layout with web-dir app/web and vendor-dir libs."""
    root = tmp_path / "custom"
    root.mkdir()
    write_composer_json(
        root,
        {
            "name": "acme/custom",
            "extra": {"typo3/cms": {"web-dir": "app/web"}},
            "config": {"vendor-dir": "libs"},
        },
    )
    make_dirs(root, "libs/composer", "app/web/typo3conf/ext/news")
    touch(root, "libs/composer/installed.json", "app/web/typo3conf/PackageStates.php")
    return root


@pytest.fixture
def legacy_installation(tmp_path: Path) -> Path:
    """Non-composer layout with typo3conf at the root."""
    root = tmp_path / "legacy"
    root.mkdir()
    make_dirs(root, "typo3_src", "fileadmin", "typo3conf/ext/news")
    touch(root, "typo3conf/PackageStates.php")
    return root


@pytest.fixture
def service():
    return create_path_resolution_service(PathResolutionSettings())


def build_request(
    root: Path,
    path_type: PathType = PathType.EXTENSION,
    installation_type: InstallationType = InstallationType.COMPOSER_STANDARD,
    key: str | None = "news",
    configuration: PathConfiguration | None = None,
    **extension_fields,
) -> PathResolutionRequest:
    builder = (
        PathResolutionRequest.builder()
        .path_type(path_type)
        .installation_path(root)
        .installation_type(installation_type)
    )
    if configuration is not None:
        builder.path_configuration(configuration)
    if key is not None and path_type == PathType.EXTENSION:
        builder.extension_identifier(ExtensionIdentifier(key, **extension_fields))
    return builder.build()


@pytest.fixture
def make_request():
    """Factory for requests built through the validating builder."""
    return build_request
