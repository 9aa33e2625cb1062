"""Closed value sets for path resolution.

Defines the core enumerations:
- PathType: Logical filesystem targets inside a TYPO3 installation
- InstallationType: On-disk layout conventions
- ResolutionStatus: Outcome of a single resolution
- StrategyPriority: Ordinal used by the registry to rank strategies

Every table keyed by one of these enums carries one entry per member.
"""

from enum import Enum
from enum import IntEnum


class InstallationType(str, Enum):
    """Installation layout convention.

    Types:
    - COMPOSER_STANDARD: Composer layout with the default ``public`` web root
    - COMPOSER_CUSTOM: Composer layout with a customised web root or vendor dir
    - LEGACY_SOURCE: Non-Composer layout with ``typo3conf`` at the root
    - AUTO_DETECT: Layout is detected from directory markers at resolution time
    """

    COMPOSER_STANDARD = "composer_standard"
    COMPOSER_CUSTOM = "composer_custom"
    LEGACY_SOURCE = "legacy_source"
    AUTO_DETECT = "auto_detect"

    def typical_directories(self) -> list[str]:
        """Directories usually present at the root of this layout."""
        return list(_TYPICAL_DIRECTORIES[self])

    @property
    def is_composer(self) -> bool:
        return self in (InstallationType.COMPOSER_STANDARD, InstallationType.COMPOSER_CUSTOM)


_TYPICAL_DIRECTORIES: dict[InstallationType, tuple[str, ...]] = {
    InstallationType.COMPOSER_STANDARD: ("vendor", "public", "var"),
    InstallationType.COMPOSER_CUSTOM: ("vendor", "web", "var"),
    InstallationType.LEGACY_SOURCE: ("typo3_src", "typo3conf", "fileadmin"),
    InstallationType.AUTO_DETECT: (),
}


class PathType(str, Enum):
    """Logical path a caller can ask for.

    Types:
    - EXTENSION: Directory of a single extension (needs an ExtensionIdentifier)
    - TYPO3CONF_DIR: Configuration directory holding ``ext/`` and PackageStates.php
    - VENDOR_DIR: Composer vendor directory
    - WEB_DIR: Publicly served web root
    - COMPOSER_INSTALLED: ``vendor/composer/installed.json`` lock metadata
    - PACKAGE_STATES: ``typo3conf/PackageStates.php`` activation state
    """

    EXTENSION = "extension"
    TYPO3CONF_DIR = "typo3conf_dir"
    VENDOR_DIR = "vendor_dir"
    WEB_DIR = "web_dir"
    COMPOSER_INSTALLED = "composer_installed"
    PACKAGE_STATES = "package_states"

    def compatible_installation_types(self) -> list[InstallationType]:
        """Installation types this path type can exist in."""
        return [t for t in InstallationType if self.is_compatible_with(t)]

    def is_compatible_with(self, installation_type: InstallationType) -> bool:
        """Check whether this path type can exist in the given layout.

        Composer-only artefacts (vendor dir, installed.json) never exist in a
        legacy source installation.
        """
        return installation_type not in _INCOMPATIBLE_INSTALLATION_TYPES[self]

    def required_validation_rules(self) -> list[str]:
        """Built-in validation rules the validator applies for this path type."""
        return list(_REQUIRED_VALIDATION_RULES[self])

    def default_locations(self) -> list[str]:
        """Conventional locations relative to the installation root.

        Extension locations contain a ``{key}`` placeholder.
        """
        return list(_DEFAULT_LOCATIONS[self])

    @property
    def requires_extension_identifier(self) -> bool:
        return "extension_identifier_required" in _REQUIRED_VALIDATION_RULES[self]

    @property
    def is_file(self) -> bool:
        """True when the resolved path is a file rather than a directory."""
        return self in (PathType.COMPOSER_INSTALLED, PathType.PACKAGE_STATES)


_INCOMPATIBLE_INSTALLATION_TYPES: dict[PathType, frozenset[InstallationType]] = {
    PathType.EXTENSION: frozenset(),
    PathType.TYPO3CONF_DIR: frozenset(),
    PathType.VENDOR_DIR: frozenset({InstallationType.LEGACY_SOURCE}),
    PathType.WEB_DIR: frozenset(),
    PathType.COMPOSER_INSTALLED: frozenset({InstallationType.LEGACY_SOURCE}),
    PathType.PACKAGE_STATES: frozenset(),
}

_REQUIRED_VALIDATION_RULES: dict[PathType, tuple[str, ...]] = {
    PathType.EXTENSION: ("extension_identifier_required", "directory_exists"),
    PathType.TYPO3CONF_DIR: ("directory_exists",),
    PathType.VENDOR_DIR: ("directory_exists", "readable"),
    PathType.WEB_DIR: ("directory_exists", "readable"),
    PathType.COMPOSER_INSTALLED: ("directory_exists", "readable"),
    PathType.PACKAGE_STATES: ("directory_exists", "readable"),
}

_DEFAULT_LOCATIONS: dict[PathType, tuple[str, ...]] = {
    PathType.EXTENSION: (
        "public/typo3conf/ext/{key}",
        "typo3conf/ext/{key}",
        "web/typo3conf/ext/{key}",
    ),
    PathType.TYPO3CONF_DIR: ("public/typo3conf", "typo3conf", "web/typo3conf"),
    PathType.VENDOR_DIR: ("vendor",),
    PathType.WEB_DIR: ("public", "web"),
    PathType.COMPOSER_INSTALLED: ("vendor/composer/installed.json",),
    PathType.PACKAGE_STATES: (
        "public/typo3conf/PackageStates.php",
        "typo3conf/PackageStates.php",
        "web/typo3conf/PackageStates.php",
    ),
}


class ResolutionStatus(str, Enum):
    """Outcome of a resolution."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    ERROR = "error"


class StrategyPriority(IntEnum):
    """Strategy ranking; higher wins.

    OVERRIDE is reserved for explicitly configured paths and outranks every
    convention-based strategy.
    """

    OVERRIDE = 1000
    HIGHEST = 100
    HIGH = 75
    NORMAL = 50
    LOW = 25
    LOWEST = 10
