"""Concrete path resolution strategies."""

from .base import PathResolutionStrategy
from .base import Trail
from .composer_installed import ComposerInstalledStrategy
from .extension import ExtensionPathStrategy
from .override import CustomPathOverrideStrategy
from .package_states import PackageStatesStrategy
from .typo3conf_dir import Typo3ConfDirStrategy
from .vendor_dir import VendorDirStrategy
from .web_dir import WebDirStrategy

DEFAULT_STRATEGY_CLASSES: tuple[type[PathResolutionStrategy], ...] = (
    CustomPathOverrideStrategy,
    WebDirStrategy,
    Typo3ConfDirStrategy,
    VendorDirStrategy,
    ExtensionPathStrategy,
    ComposerInstalledStrategy,
    PackageStatesStrategy,
)

__all__ = [
    "PathResolutionStrategy",
    "Trail",
    "CustomPathOverrideStrategy",
    "WebDirStrategy",
    "Typo3ConfDirStrategy",
    "VendorDirStrategy",
    "ExtensionPathStrategy",
    "ComposerInstalledStrategy",
    "PackageStatesStrategy",
    "DEFAULT_STRATEGY_CLASSES",
]
