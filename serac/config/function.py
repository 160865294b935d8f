"""
Configuration classes for individual serverless functions.

These mirror the ``functions`` block of a service file. Keys are accepted
in the camelCase form used by service files and in snake_case.
"""

from typing import Any
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class ServiceModel(BaseModel):
    """Base model for everything read from a service file."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class VpcConfig(ServiceModel):
    """
    VPC attachment for a function.

    Function-level values override provider-level values field by field.
    """

    subnet_ids: list[Any] | None = Field(None, description="Subnet ids")
    security_group_ids: list[Any] | None = Field(None, description="Security group ids")
    ipv6_allowed_for_dual_stack: bool | None = Field(
        None,
        description="Allow outbound IPv6 traffic on dual-stack subnets"
    )


class FileSystemConfig(ServiceModel):
    """EFS access point mounted into the function. Requires a VPC."""

    arn: str | dict[str, Any] = Field(..., description="Access point ARN")
    local_mount_path: str = Field(..., description="Mount path, must start with /mnt/")


class ImageConfig(ServiceModel):
    """
    Container image reference with optional overrides.

    Example:
        image:
          uri: 000000000000.dkr.ecr.us-east-1.amazonaws.com/app@sha256:...
          command: ["app.handler"]
    """

    uri: str | None = Field(None, description="Image URI")
    name: str | None = Field(None, description="Name of an image under provider.ecr.images")
    command: list[str] | None = Field(None, description="Overrides the image CMD")
    entry_point: list[str] | None = Field(None, description="Overrides the image ENTRYPOINT")
    working_directory: str | None = Field(None, description="Overrides the image WORKDIR")


class RuntimeManagementConfig(ServiceModel):
    mode: str = Field("auto", description="auto, onFunctionUpdate or manual")
    arn: str | None = Field(None, description="Runtime version ARN (manual mode)")


class CorsConfig(ServiceModel):
    """
    CORS overrides for a function URL.

    An absent list keeps the default; an explicit ``null`` (or empty list)
    removes the field from the compiled resource. Use ``is_cleared`` to tell
    the two apart.
    """

    allowed_origins: list[str] | None = Field(None, description="Allowed origins")
    allowed_headers: list[str] | None = Field(None, description="Allowed request headers")
    allowed_methods: list[str] | None = Field(None, description="Allowed HTTP methods")
    allow_credentials: bool | None = Field(None, description="Allow credentials")
    exposed_response_headers: list[str] | None = Field(
        None,
        description="Response headers exposed to the browser"
    )
    max_age: int | None = Field(None, description="Preflight cache duration in seconds")

    def is_cleared(self, field_name: str) -> bool:
        """Whether the field was explicitly set to null or emptied."""
        return field_name in self.model_fields_set and not getattr(self, field_name)


class UrlConfig(ServiceModel):
    authorizer: str | None = Field(None, description="aws_iam, or omitted for a public URL")
    cors: CorsConfig | bool | None = Field(None, description="CORS settings, or true for defaults")
    invoke_mode: str | None = Field(None, description="BUFFERED or RESPONSE_STREAM")


class DestinationTarget(ServiceModel):
    """Structured destination target: ``{type, arn}``."""

    type: str | None = Field(None, description="function, sqs, sns or eventBus")
    arn: str | dict[str, Any] = Field(..., description="Target ARN or intrinsic reference")


class DestinationsConfig(ServiceModel):
    """
    Targets are kept as declared (ARN, function name or ``{type, arn}``)
    and classified when the function is compiled.
    """

    on_success: Any = Field(
        None,
        description="Target invoked after a successful asynchronous invocation"
    )
    on_failure: Any = Field(
        None,
        description="Target invoked after a failed asynchronous invocation"
    )


class PackageConfig(ServiceModel):
    """Packaging settings, at service or function level."""

    artifact: str | None = Field(None, description="Path or s3:// URI of a prebuilt artifact")
    individually: bool | None = Field(None, description="Package each function separately")
    artifact_directory_name: str | None = Field(
        None,
        description="Key prefix of artifacts in the deployment bucket"
    )
    path: str | None = Field(None, description="Local packaging directory")


class FunctionConfig(ServiceModel):
    """
    Declarative definition of a single function.

    Exactly one of ``handler`` and ``image`` must be set; this is checked at
    compile time so that the error can name the function.

    Example:
        functions:
          api:
            handler: index.handler
            memorySize: 512
            url:
              cors: true
    """

    handler: str | None = Field(None, description="Handler entry (module.function)")
    image: str | ImageConfig | None = Field(None, description="Container image")
    name: str | None = Field(None, description="Deployed function name")
    description: str | None = Field(None, description="Function description")
    runtime: str | None = Field(None, description="Lambda runtime")
    runtime_management: str | RuntimeManagementConfig | None = Field(
        None,
        description="Runtime update mode"
    )
    memory_size: int | None = Field(None, description="Memory allocation in MB")
    timeout: int | None = Field(None, description="Timeout in seconds")
    architecture: str | None = Field(None, description="x86_64 or arm64")
    ephemeral_storage_size: int | None = Field(None, description="/tmp size in MB")
    environment: dict[str, Any] | None = Field(None, description="Environment variables")
    tags: dict[str, Any] | None = Field(None, description="Function tags")
    vpc: VpcConfig | bool | None = Field(
        None,
        description="VPC settings; null or false opts out of the provider VPC"
    )
    file_system_config: FileSystemConfig | None = Field(None, description="EFS mount")
    on_error: str | dict[str, Any] | None = Field(None, description="Dead letter target ARN")
    kms_key_arn: str | dict[str, Any] | None = Field(None, description="KMS key ARN")
    tracing: bool | str | None = Field(None, description="X-Ray tracing mode")
    layers: list[str | dict[str, Any]] | None = Field(None, description="Layer ARNs or refs")
    reserved_concurrency: int | None = Field(None, description="Reserved concurrent executions")
    provisioned_concurrency: int | None = Field(
        None,
        description="Provisioned concurrent executions"
    )
    version_function: bool | None = Field(None, description="Publish a version on change")
    snap_start: bool | None = Field(None, description="Enable SnapStart on published versions")
    url: UrlConfig | bool | None = Field(None, description="Function URL")
    destinations: DestinationsConfig | None = Field(None, description="Async destinations")
    maximum_event_age: int | None = Field(None, description="Max async event age in seconds")
    maximum_retry_attempts: int | None = Field(None, description="Max async retry attempts")
    role: str | dict[str, Any] | None = Field(None, description="Execution role")
    condition: str | None = Field(None, description="CloudFormation condition name")
    depends_on: list[str] | str | None = Field(None, description="Extra creation dependencies")
    disable_logs: bool | None = Field(None, description="Skip the log group dependency")
    package: PackageConfig = Field(default_factory=PackageConfig, description="Packaging")

    def vpc_disabled(self) -> bool:
        """Whether the function explicitly opts out of any VPC."""
        return self.vpc is False or ("vpc" in self.model_fields_set and self.vpc is None)

    def image_config(self) -> ImageConfig | None:
        if self.image is None:
            return None
        if isinstance(self.image, str):
            return ImageConfig(uri=self.image)
        return self.image
