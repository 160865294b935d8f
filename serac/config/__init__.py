"""
Configuration classes for serac.

A service file is validated into ``ServiceConfig``, which carries the
provider defaults (``ProviderConfig``) and one ``FunctionConfig`` per
function.
"""

from serac.config.function import (
    ServiceModel,
    VpcConfig,
    FileSystemConfig,
    ImageConfig,
    RuntimeManagementConfig,
    CorsConfig,
    UrlConfig,
    DestinationTarget,
    DestinationsConfig,
    PackageConfig,
    FunctionConfig,
)
from serac.config.provider import (
    ProviderConfig,
    TracingConfig,
    EcrConfig,
    EcrImageConfig,
    LEGACY_HASHING_VERSION,
    CURRENT_HASHING_VERSION,
)
from serac.config.service import (
    LayerConfig,
    ServiceConfig,
    load_service,
)

__all__ = [
    # Function configs
    "ServiceModel",
    "VpcConfig",
    "FileSystemConfig",
    "ImageConfig",
    "RuntimeManagementConfig",
    "CorsConfig",
    "UrlConfig",
    "DestinationTarget",
    "DestinationsConfig",
    "PackageConfig",
    "FunctionConfig",
    # Provider configs
    "ProviderConfig",
    "TracingConfig",
    "EcrConfig",
    "EcrImageConfig",
    "LEGACY_HASHING_VERSION",
    "CURRENT_HASHING_VERSION",
    # Service
    "LayerConfig",
    "ServiceConfig",
    "load_service",
]
