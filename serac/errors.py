"""
Error types raised while compiling a service.

Every error carries a stable machine-readable ``code`` and, where it concerns
a single function, the offending ``function_name``. Compilation is not
transactional, so any of these aborts the whole run.
"""


class CompilationError(Exception):
    """Raised when a service cannot be compiled."""

    code = "COMPILATION_ERROR"

    def __init__(self, message: str, function_name: str | None = None, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.function_name = function_name
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return self.message


class ConfigurationError(CompilationError):
    """A function declares mutually exclusive settings or lacks a required one."""

    code = "CONFIGURATION_ERROR"


class BothHandlerAndImageError(ConfigurationError):
    code = "FUNCTION_BOTH_HANDLER_AND_IMAGE_DEFINED_ERROR"

    def __init__(self, function_name: str):
        super().__init__(
            f'Either "handler" or "image" property (not both) needs to be set '
            f'on function "{function_name}".',
            function_name,
        )


class MissingHandlerOrImageError(ConfigurationError):
    code = "FUNCTION_NEITHER_HANDLER_NOR_IMAGE_DEFINED_ERROR"

    def __init__(self, function_name: str):
        super().__init__(
            f'Either "handler" or "image" property needs to be set '
            f'on function "{function_name}"',
            function_name,
        )


class MissingDependencyError(CompilationError):
    """A feature requires another feature that is not configured."""

    code = "LAMBDA_FILE_SYSTEM_CONFIG_MISSING_VPC"


class ConflictingSettingsError(CompilationError):
    """Two features are declared that cannot be combined."""

    code = "FUNCTION_BOTH_PROVISIONED_CONCURRENCY_AND_SNAPSTART_ENABLED_ERROR"


class UnsupportedDestinationError(CompilationError):
    """A destination target cannot be classified."""

    code = "UNSUPPORTED_DESTINATION_TARGET"


class ArtifactReadError(CompilationError):
    """An artifact on local storage could not be read."""

    code = "ARTIFACT_READ_ERROR"


class ArtifactDownloadError(CompilationError):
    """A remote artifact could not be fetched."""

    code = "ARTIFACT_DOWNLOAD_ERROR"


class ImageResolutionError(CompilationError):
    """A container image URI or digest could not be resolved."""

    code = "IMAGE_RESOLUTION_ERROR"


class DuplicateResourceError(CompilationError):
    """A logical id is already taken by a different resource."""

    code = "DUPLICATE_RESOURCE_ERROR"


class DanglingDependencyError(CompilationError):
    """A resource depends on a logical id that is not in the graph."""

    code = "DANGLING_DEPENDENCY_ERROR"
