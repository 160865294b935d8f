"""
Serac: serverless function definitions compiled to CloudFormation.

Serac reads a service file (a provider block and a functions block) and
compiles it into a resource graph: compute resources, immutable versions
with content-addressed ids, aliases, function URLs, async invoke configs and
the permissions they need on the shared execution role.

Core concepts:
- ServiceConfig: the validated service file
- ResourceGraph: logical id to resource, plus outputs
- FunctionCompiler: adds each function's resources to the graph
- VersionEngine: digests code and configuration into version ids

Example:
    from serac import load_service, compile_service

    service = load_service("serverless.yml")
    graph, compiled = compile_service(service)
    template = graph.to_template()
"""

from serac.config import FunctionConfig, ProviderConfig, ServiceConfig, load_service
from serac.template import ExecutionPolicy, Resource, ResourceGraph, build_core_graph
from serac.hashing import FileHasher, VersionEngine, select_strategy
from serac.compilation import CompiledFunction, FunctionCompiler, compile_service
from serac.naming import Naming
from serac.errors import (
    CompilationError,
    ConfigurationError,
    BothHandlerAndImageError,
    MissingHandlerOrImageError,
    MissingDependencyError,
    ConflictingSettingsError,
    UnsupportedDestinationError,
    ArtifactReadError,
    ArtifactDownloadError,
    ImageResolutionError,
    DuplicateResourceError,
    DanglingDependencyError,
)

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "FunctionConfig",
    "ProviderConfig",
    "ServiceConfig",
    "load_service",
    # Template
    "ExecutionPolicy",
    "Resource",
    "ResourceGraph",
    "build_core_graph",
    # Hashing
    "FileHasher",
    "VersionEngine",
    "select_strategy",
    # Compilation
    "CompiledFunction",
    "FunctionCompiler",
    "compile_service",
    "Naming",
    # Errors
    "CompilationError",
    "ConfigurationError",
    "BothHandlerAndImageError",
    "MissingHandlerOrImageError",
    "MissingDependencyError",
    "ConflictingSettingsError",
    "UnsupportedDestinationError",
    "ArtifactReadError",
    "ArtifactDownloadError",
    "ImageResolutionError",
    "DuplicateResourceError",
    "DanglingDependencyError",
]
