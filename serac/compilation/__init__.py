"""
Compilation of functions into template resources.

``FunctionCompiler`` drives the per-function builders: roles, version
resources, function URLs and async invoke configs.
"""

from serac.compilation.roles import RoleKind, RoleReference, resolve_role
from serac.compilation.destinations import (
    Destination,
    DestinationKind,
    DestinationPermissions,
    classify_destination,
)
from serac.compilation.urls import DEFAULT_CORS, resolve_cors
from serac.compilation.functions import (
    CompiledFunction,
    FunctionCompiler,
    compile_service,
)

__all__ = [
    # Roles
    "RoleKind",
    "RoleReference",
    "resolve_role",
    # Destinations
    "Destination",
    "DestinationKind",
    "DestinationPermissions",
    "classify_destination",
    # URLs
    "DEFAULT_CORS",
    "resolve_cors",
    # Compiler
    "CompiledFunction",
    "FunctionCompiler",
    "compile_service",
]
