"""
Service definition: provider defaults, functions and layers.

Service files are YAML documents read with PyYAML and validated into
``ServiceConfig``.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field

from serac.config.function import FunctionConfig, PackageConfig, ServiceModel
from serac.config.provider import ProviderConfig


class LayerConfig(ServiceModel):
    """A layer packaged and published by the service itself."""

    name: str | None = Field(None, description="Published layer name")
    description: str | None = Field(None, description="Layer description")
    compatible_runtimes: list[str] | None = Field(None, description="Compatible runtimes")
    compatible_architectures: list[str] | None = Field(None, description="Compatible architectures")
    license_info: str | None = Field(None, description="License")
    retain: bool | None = Field(None, description="Retain old layer versions")
    package: PackageConfig = Field(default_factory=PackageConfig)


class ServiceConfig(ServiceModel):
    """
    A complete service definition.

    Example:
        service = ServiceConfig(
            service="orders",
            provider=ProviderConfig(stage="prod"),
            functions={"api": FunctionConfig(handler="index.handler")},
        )
    """

    service: str = Field(..., description="Service name")
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    functions: dict[str, FunctionConfig] = Field(default_factory=dict)
    layers: dict[str, LayerConfig] = Field(default_factory=dict)
    package: PackageConfig = Field(default_factory=PackageConfig)
    resources: dict[str, Any] = Field(
        default_factory=dict,
        description="Extra template Resources and Outputs merged into the core template"
    )
    service_dir: Path = Field(default=Path("."), exclude=True)

    def deployed_function_name(
        self,
        name: str,
        function: FunctionConfig | None = None,
        stage: str | None = None,
    ) -> str:
        function = function or self.functions.get(name)
        if function is not None and function.name:
            return function.name
        return f"{self.service}-{stage or self.provider.stage}-{name}"

    def artifact_directory_name(self, stage: str | None = None) -> str:
        if self.package.artifact_directory_name:
            return self.package.artifact_directory_name
        return f"serverless/{self.service}/{stage or self.provider.stage}"

    def artifact_s3_key(self, artifact_path: str, stage: str | None = None) -> str:
        """Key of an artifact in the deployment bucket."""
        return f"{self.artifact_directory_name(stage)}/{os.path.basename(artifact_path)}"

    def _anchored(self, artifact: str) -> str:
        """Resolve a local artifact path against the service directory."""
        if artifact.startswith("s3://"):
            return artifact
        return str(self.service_dir / artifact)

    def packaging_dir(self) -> Path:
        if self.package.path:
            return self.service_dir / self.package.path
        return self.service_dir / ".serverless"

    def function_artifact_path(self, name: str, function: FunctionConfig | None = None) -> str:
        """
        Local path of the code artifact a handler function deploys.

        Falls back to the artifact serverless packaging would have produced
        when no explicit artifact is configured.
        """
        function = function or self.functions[name]
        if function.package.artifact:
            return self._anchored(function.package.artifact)
        if self.package.artifact:
            return self._anchored(self.package.artifact)
        if self.package.individually or function.package.individually:
            return str(self.packaging_dir() / f"{name}.zip")
        return str(self.packaging_dir() / f"{self.service}.zip")

    def layer_artifact_path(self, name: str) -> str:
        layer = self.layers[name]
        if layer.package.artifact:
            return self._anchored(layer.package.artifact)
        return str(self.packaging_dir() / f"{name}.zip")


def load_service(path: str | os.PathLike, overrides: dict[str, Any] | None = None) -> ServiceConfig:
    """
    Load a service definition from a YAML file.

    Args:
        path: Path to the service file
        overrides: Provider-level values (stage, region, ...) that win over the file

    Returns:
        Validated ServiceConfig anchored at the file's directory
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if overrides:
        provider = dict(data.get("provider") or {})
        provider.update({k: v for k, v in overrides.items() if v is not None})
        data["provider"] = provider

    data["functions"] = {
        name: (function or {}) for name, function in (data.get("functions") or {}).items()
    }
    service = ServiceConfig.model_validate(data)
    service.service_dir = path.resolve().parent
    return service
