"""Installation path resolution for TYPO3 installations.

Locates extension directories, the vendor directory, the web root, the
typo3conf directory, composer's installed.json and PackageStates.php across
composer and legacy layouts.
"""

from .cache import CacheStats
from .cache import JsonFileCacheLayer
from .cache import MemoryCacheLayer
from .cache import MultiLayerPathResolutionCache
from .cache import PathResolutionCache
from .enums import InstallationType
from .enums import PathType
from .enums import ResolutionStatus
from .enums import StrategyPriority
from .exceptions import ConstructionError
from .exceptions import NoCompatibleStrategyError
from .exceptions import PathNotFoundError
from .exceptions import PathResolutionError
from .exceptions import StrategyConflictError
from .filesystem import ComposerManifestReader
from .filesystem import InstallationTypeDetector
from .filesystem import LocalFilesystemProbe
from .models import CacheOptions
from .models import ExtensionIdentifier
from .models import PathConfiguration
from .models import PathResolutionRequest
from .models import PathResolutionResponse
from .recovery import ErrorRecoveryManager
from .registry import PathResolutionStrategyRegistry
from .service import PathResolutionService
from .validator import PathResolutionValidator

__all__ = [
    "CacheOptions",
    "CacheStats",
    "ComposerManifestReader",
    "ConstructionError",
    "ErrorRecoveryManager",
    "ExtensionIdentifier",
    "InstallationType",
    "InstallationTypeDetector",
    "JsonFileCacheLayer",
    "LocalFilesystemProbe",
    "MemoryCacheLayer",
    "MultiLayerPathResolutionCache",
    "NoCompatibleStrategyError",
    "PathConfiguration",
    "PathNotFoundError",
    "PathResolutionCache",
    "PathResolutionError",
    "PathResolutionRequest",
    "PathResolutionResponse",
    "PathResolutionService",
    "PathResolutionStrategyRegistry",
    "PathResolutionValidator",
    "PathType",
    "ResolutionStatus",
    "StrategyConflictError",
    "StrategyPriority",
]
