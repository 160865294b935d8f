"""
Provider-level configuration.

``ProviderConfig`` holds the service-wide defaults every function falls back
to, following the configuration cascade: function value, then provider
value, then a hard default.
"""

from typing import Any
from pydantic import Field

from serac.config.function import ServiceModel, VpcConfig


LEGACY_HASHING_VERSION = "20200924"
CURRENT_HASHING_VERSION = "20201221"


class TracingConfig(ServiceModel):
    lambda_: bool | str | None = Field(None, alias="lambda", description="Lambda tracing mode")


class EcrImageConfig(ServiceModel):
    uri: str | None = Field(None, description="Image URI")
    path: str | None = Field(None, description="Build context (not built by serac)")


class EcrConfig(ServiceModel):
    images: dict[str, EcrImageConfig] = Field(default_factory=dict)


class ProviderConfig(ServiceModel):
    """
    AWS provider defaults for a service.

    Example:
        provider = ProviderConfig(
            stage="prod",
            region="eu-west-1",
            memory_size=512,
            tags={"team": "data"},
        )
    """

    name: str = Field(default="aws", description="Provider name")
    stage: str = Field(default="dev", description="Deployment stage")
    region: str = Field(default="us-east-1", description="AWS region")
    runtime: str | None = Field(default=None, description="Default runtime")
    memory_size: int | None = Field(default=None, description="Default memory in MB")
    timeout: int | None = Field(default=None, description="Default timeout in seconds")
    architecture: str | None = Field(default=None, description="Default architecture")
    vpc: VpcConfig | None = Field(default=None, description="Default VPC settings")
    tags: dict[str, Any] = Field(default_factory=dict, description="Default function tags")
    environment: dict[str, Any] = Field(
        default_factory=dict, description="Default environment variables"
    )
    tracing: TracingConfig | None = Field(default=None, description="Tracing settings")
    kms_key_arn: str | dict[str, Any] | None = Field(default=None, description="Default KMS key")
    layers: list[str | dict[str, Any]] | None = Field(default=None, description="Default layers")
    version_functions: bool = Field(default=True, description="Publish versions by default")
    lambda_hashing_version: str | None = Field(
        default=None,
        description="Version hash algorithm (20200924 legacy, 20201221 current)"
    )
    role: str | dict[str, Any] | None = Field(default=None, description="Default execution role")
    deployment_bucket: str | None = Field(default=None, description="Custom deployment bucket")
    log_retention_in_days: int | None = Field(default=None, description="Log group retention")
    ecr: EcrConfig = Field(default_factory=EcrConfig, description="Named container images")

    def uses_legacy_hashing(self) -> bool:
        return self.lambda_hashing_version is not None and (
            self.lambda_hashing_version < CURRENT_HASHING_VERSION
        )

    def lambda_tracing(self) -> bool | str | None:
        return self.tracing.lambda_ if self.tracing else None
