"""
Function compiler: function definitions to resources.

Compiles every function of a service into its compute resource and the
resources hanging off it (version, alias, URL, async invoke config),
wiring them into a graph that already holds the core resources.

Functions are compiled one at a time. They all write to the same graph and
the same execution policy, and the first invalid function aborts the run.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any

from serac.compilation.dependencies import (
    TargetAlias,
    attach_declared_dependencies,
    attach_log_group,
)
from serac.compilation.destinations import (
    DestinationPermissions,
    compile_event_invoke_config,
    function_arn_resolver,
)
from serac.compilation.roles import compile_role, resolve_role
from serac.compilation.urls import compile_function_url
from serac.config.function import FunctionConfig
from serac.config.provider import ProviderConfig
from serac.config.service import ServiceConfig
from serac.errors import (
    BothHandlerAndImageError,
    CompilationError,
    ConfigurationError,
    ConflictingSettingsError,
    MissingDependencyError,
    MissingHandlerOrImageError,
)
from serac.hashing.file_hash import FileHasher
from serac.hashing.strategies import select_strategy
from serac.hashing.version import VersionEngine
from serac.naming import PROVISIONED_CONCURRENCY_ALIAS, SNAP_START_ALIAS, Naming
from serac.template.core import build_core_graph, deployment_bucket
from serac.template.graph import Resource, ResourceGraph
from serac.template.intrinsics import get_att, ref
from serac.template.policy import ExecutionPolicy

logger = logging.getLogger(__name__)


DEFAULT_MEMORY_SIZE = 1024
DEFAULT_TIMEOUT = 6
DEFAULT_RUNTIME = "python3.12"

ENFORCE_HASH_UPDATE_DESCRIPTION = "temporary-description-to-enforce-hash-update"

RUNTIME_UPDATE_MODES = {
    "auto": "Auto",
    "onFunctionUpdate": "FunctionUpdate",
    "manual": "Manual",
}


@dataclass
class CompiledFunction:
    """Logical ids of what one function compiled into."""

    name: str
    logical_id: str
    version_logical_id: str | None = None
    alias_logical_id: str | None = None
    url_logical_id: str | None = None
    event_config_logical_id: str | None = None


class FunctionCompiler:
    """
    Compiles function definitions into a resource graph.

    Example:
        service = load_service("serverless.yml")
        graph = build_core_graph(service)
        compiler = FunctionCompiler(service)
        compiler.compile(service.functions, service.provider, graph)
        template = graph.to_template()
    """

    def __init__(
        self,
        service: ServiceConfig,
        naming: Naming | None = None,
        hasher: FileHasher | None = None,
        image_resolver: Any = None,
        enforce_hash_update: bool = False,
    ):
        self.service = service
        self.naming = naming or Naming()
        self.hasher = hasher or FileHasher()
        self.image_resolver = image_resolver
        self.enforce_hash_update = enforce_hash_update
        self.compiled: list[CompiledFunction] = []

    def _resolver(self):
        if self.image_resolver is None:
            from serac.artifacts.images import ImageResolver

            self.image_resolver = ImageResolver()
        return self.image_resolver

    def compile(
        self,
        functions: dict[str, FunctionConfig],
        provider: ProviderConfig,
        graph: ResourceGraph,
    ) -> ResourceGraph:
        """
        Compile functions into the graph.

        ``functions`` and ``provider`` take precedence over the service's
        own; service-level packaging still comes from the service. Memoised
        artifact hashes are dropped at the start of every run.

        Args:
            functions: Function definitions by name
            provider: Provider defaults
            graph: Graph seeded with the core resources

        Returns:
            The same graph, with every function's resources added

        Raises:
            CompilationError: On the first function that cannot be compiled
        """
        self.hasher.clear()
        self.compiled = []
        policy = ExecutionPolicy.from_graph(graph)
        permissions = DestinationPermissions(policy, self.naming)
        engine = VersionEngine(
            select_strategy(provider, self.enforce_hash_update),
            self.hasher,
            self.naming,
            self.service.layer_artifact_path,
        )
        logger.debug("Using version hashing %s", engine.strategy.version)

        self._warm_hashes(functions, provider)

        for name, function in functions.items():
            try:
                compiled = self.compile_function(
                    name, function, functions, provider, graph, policy, permissions, engine
                )
            except CompilationError as e:
                if e.function_name is None:
                    e.function_name = name
                    e.message = f'{e.message} (function "{name}")'
                raise
            except Exception as e:
                raise CompilationError(
                    f"Failed to compile function '{name}': {e}", name
                ) from e
            self.compiled.append(compiled)

        graph.validate()
        return graph

    def _warm_hashes(self, functions: dict[str, FunctionConfig], provider: ProviderConfig) -> None:
        """Hash artifacts of versioned handler functions across a thread pool."""
        paths = [
            self.service.function_artifact_path(name, function)
            for name, function in functions.items()
            if function.handler and not function.image and self._is_versioned(function, provider)
        ]
        if paths:
            self.hasher.warm(paths)

    @staticmethod
    def _is_versioned(function: FunctionConfig, provider: ProviderConfig) -> bool:
        if function.version_function is not None:
            enabled = function.version_function
        else:
            enabled = provider.version_functions
        return bool(enabled or function.provisioned_concurrency or function.snap_start)

    def compile_function(
        self,
        name: str,
        function: FunctionConfig,
        functions: dict[str, FunctionConfig],
        provider: ProviderConfig,
        graph: ResourceGraph,
        policy: ExecutionPolicy | None,
        permissions: DestinationPermissions,
        engine: VersionEngine,
    ) -> CompiledFunction:
        if function.handler and function.image:
            raise BothHandlerAndImageError(name)
        if not function.handler and not function.image:
            raise MissingHandlerOrImageError(name)

        logical_id = self.naming.lambda_logical_id(name)
        role = resolve_role(function.role or provider.role)
        # Externally supplied roles carry their own permissions.
        grants = policy if role.is_default else None

        resource = Resource(
            type="AWS::Lambda::Function",
            condition=function.condition,
            source_name=name,
        )
        properties = resource.properties

        artifact_path = None
        image_sha = None
        if function.image:
            image = function.image_config()
            resolved = self._resolver().resolve(name, image, provider)
            image_sha = resolved.digest
            properties["Code"] = {"ImageUri": resolved.uri}
            properties["PackageType"] = "Image"
            image_properties = {}
            if image.command:
                image_properties["Command"] = image.command
            if image.entry_point:
                image_properties["EntryPoint"] = image.entry_point
            if image.working_directory:
                image_properties["WorkingDirectory"] = image.working_directory
            if image_properties:
                properties["ImageConfig"] = image_properties
        else:
            artifact_path = self.service.function_artifact_path(name, function)
            properties["Code"] = {
                "S3Bucket": deployment_bucket(provider),
                "S3Key": self.service.artifact_s3_key(artifact_path, provider.stage),
            }
            properties["Handler"] = function.handler
            properties["Runtime"] = function.runtime or provider.runtime or DEFAULT_RUNTIME
            runtime_management = self._runtime_management(name, function)
            if runtime_management:
                properties["RuntimeManagementConfig"] = runtime_management

        properties["FunctionName"] = self.service.deployed_function_name(
            name, function, provider.stage
        )
        properties["MemorySize"] = function.memory_size or provider.memory_size or DEFAULT_MEMORY_SIZE
        properties["Timeout"] = function.timeout or provider.timeout or DEFAULT_TIMEOUT

        architecture = function.architecture or provider.architecture
        if architecture:
            properties["Architectures"] = [architecture]
        if function.description:
            properties["Description"] = function.description
        attach_declared_dependencies(resource, function)

        tags = {**provider.tags, **(function.tags or {})}
        if tags:
            properties["Tags"] = [{"Key": k, "Value": v} for k, v in tags.items()]
        if function.ephemeral_storage_size:
            properties["EphemeralStorage"] = {"Size": function.ephemeral_storage_size}

        self._compile_dead_letter(function, properties, grants)
        self._compile_kms_key(function, provider, properties, grants)
        self._compile_tracing(function, provider, properties, grants)

        environment = {**provider.environment, **(function.environment or {})}
        if environment:
            properties["Environment"] = {"Variables": copy.deepcopy(environment)}

        compile_role(resource, role)
        self._compile_vpc(function, provider, properties)
        self._compile_file_system(name, function, properties, grants)

        if function.reserved_concurrency is not None:
            properties["ReservedConcurrentExecutions"] = function.reserved_concurrency

        attach_log_group(resource, name, function, self.naming)

        layers = function.layers if function.layers is not None else provider.layers
        if layers:
            properties["Layers"] = copy.deepcopy(layers)

        versioned = self._is_versioned(function, provider)
        if versioned:
            if function.provisioned_concurrency and function.snap_start:
                raise ConflictingSettingsError(
                    f"Functions with provisioned concurrency cannot have SnapStart enabled. "
                    f'Disable one of them on function "{name}".',
                    name,
                )
            if self.enforce_hash_update:
                properties["Description"] = ENFORCE_HASH_UPDATE_DESCRIPTION
            # Part of the version identity, so set before hashing.
            if function.snap_start:
                properties["SnapStart"] = {"ApplyOn": "PublishedVersions"}

        graph.add(logical_id, resource)

        compiled = CompiledFunction(name=name, logical_id=logical_id)
        alias = None
        if versioned:
            alias = self._compile_version(name, function, graph, engine, compiled,
                                          artifact_path, image_sha)

        compiled.url_logical_id = compile_function_url(
            name, function.url, graph, self.naming, alias
        )
        compiled.event_config_logical_id = compile_event_invoke_config(
            name,
            function,
            graph,
            self.naming,
            permissions,
            function_arn_resolver(
                functions,
                lambda target: self.service.deployed_function_name(
                    target, functions[target], provider.stage
                ),
                name,
            ),
            manages_own_permissions=not role.is_default,
            alias=alias,
        )
        return compiled

    def _compile_version(
        self,
        name: str,
        function: FunctionConfig,
        graph: ResourceGraph,
        engine: VersionEngine,
        compiled: CompiledFunction,
        artifact_path: str | None,
        image_sha: str | None,
    ) -> TargetAlias | None:
        """Add the version, its output and any alias. Returns the alias."""
        logical_id = self.naming.lambda_logical_id(name)
        digest = engine.digest(
            graph.get(logical_id).properties, graph,
            artifact_path=artifact_path, image_sha=image_sha,
        )
        version_id, version = engine.build_version(name, digest, function.description)
        graph.add(version_id, version)
        graph.add_output(
            self.naming.version_output_logical_id(name),
            ref(version_id),
            "Current Lambda function version",
        )
        compiled.version_logical_id = version_id
        logger.info("Function %s is at version %s", name, version_id)

        if function.provisioned_concurrency:
            alias = TargetAlias(
                PROVISIONED_CONCURRENCY_ALIAS,
                self.naming.provisioned_concurrency_alias_logical_id(name),
            )
            extra = {
                "ProvisionedConcurrencyConfig": {
                    "ProvisionedConcurrentExecutions": function.provisioned_concurrency,
                },
            }
        elif function.snap_start:
            alias = TargetAlias(SNAP_START_ALIAS, self.naming.snap_start_alias_logical_id(name))
            extra = {}
        else:
            return None

        graph.add(alias.logical_id, Resource(
            type="AWS::Lambda::Alias",
            properties={
                "FunctionName": ref(logical_id),
                "FunctionVersion": get_att(version_id, "Version"),
                "Name": alias.name,
                **extra,
            },
            depends_on=[logical_id],
            source_name=name,
        ))
        compiled.alias_logical_id = alias.logical_id
        return alias

    @staticmethod
    def _runtime_management(name: str, function: FunctionConfig) -> dict[str, Any] | None:
        setting = function.runtime_management
        if setting is None:
            return None
        if isinstance(setting, str):
            mode, arn = setting, None
        else:
            mode, arn = setting.mode, setting.arn
        update_on = RUNTIME_UPDATE_MODES.get(mode)
        if update_on is None:
            raise ConfigurationError(
                f'Unsupported runtime management mode "{mode}" on function "{name}"', name
            )
        if update_on == "Auto":
            return None
        config = {"UpdateRuntimeOn": update_on}
        if update_on == "Manual":
            if not arn:
                raise ConfigurationError(
                    f'Runtime management mode "manual" requires an arn on function "{name}"',
                    name,
                )
            config["RuntimeVersionArn"] = arn
        return config

    @staticmethod
    def _compile_dead_letter(function: FunctionConfig, properties: dict[str, Any],
                             grants: ExecutionPolicy | None) -> None:
        target = function.on_error
        if not target:
            return
        properties["DeadLetterConfig"] = {"TargetArn": target}
        if isinstance(target, str) and grants is not None:
            grants.allow(["sns:Publish"], [target])

    @staticmethod
    def _compile_kms_key(function: FunctionConfig, provider: ProviderConfig,
                         properties: dict[str, Any], grants: ExecutionPolicy | None) -> None:
        key = function.kms_key_arn or provider.kms_key_arn
        if not key:
            return
        properties["KmsKeyArn"] = key
        if isinstance(key, str) and grants is not None:
            grants.allow(["kms:Decrypt"], [key])

    @staticmethod
    def _compile_tracing(function: FunctionConfig, provider: ProviderConfig,
                         properties: dict[str, Any], grants: ExecutionPolicy | None) -> None:
        tracing = function.tracing if function.tracing is not None else provider.lambda_tracing()
        if not tracing:
            return
        properties["TracingConfig"] = {"Mode": "Active" if tracing is True else tracing}
        if grants is not None:
            grants.allow(["xray:PutTraceSegments", "xray:PutTelemetryRecords"], ["*"])

    @staticmethod
    def _compile_vpc(function: FunctionConfig, provider: ProviderConfig,
                     properties: dict[str, Any]) -> None:
        """Overlay function VPC fields on the provider's; keep only complete configs."""
        if function.vpc_disabled():
            return
        provider_vpc = provider.vpc
        function_vpc = function.vpc if not isinstance(function.vpc, bool) else None

        def pick(field_name: str) -> Any:
            if function_vpc is not None and getattr(function_vpc, field_name) is not None:
                return getattr(function_vpc, field_name)
            if provider_vpc is not None:
                return getattr(provider_vpc, field_name)
            return None

        subnet_ids = pick("subnet_ids")
        security_group_ids = pick("security_group_ids")
        if not subnet_ids or not security_group_ids:
            return
        vpc: dict[str, Any] = {
            "SecurityGroupIds": copy.deepcopy(security_group_ids),
            "SubnetIds": copy.deepcopy(subnet_ids),
        }
        ipv6 = pick("ipv6_allowed_for_dual_stack")
        if ipv6 is not None:
            vpc["Ipv6AllowedForDualStack"] = ipv6
        properties["VpcConfig"] = vpc

    @staticmethod
    def _compile_file_system(name: str, function: FunctionConfig, properties: dict[str, Any],
                             grants: ExecutionPolicy | None) -> None:
        mount = function.file_system_config
        if mount is None:
            return
        if "VpcConfig" not in properties:
            raise MissingDependencyError(
                f'Ensure that function "{name}" has a VPC configured '
                f"before mounting a file system",
                name,
            )
        if grants is not None:
            grants.allow(
                ["elasticfilesystem:ClientMount", "elasticfilesystem:ClientWrite"],
                [mount.arn],
            )
        properties["FileSystemConfigs"] = [{
            "Arn": mount.arn,
            "LocalMountPath": mount.local_mount_path,
        }]


def compile_service(
    service: ServiceConfig,
    hasher: FileHasher | None = None,
    image_resolver: Any = None,
    enforce_hash_update: bool = False,
    previous: ResourceGraph | None = None,
) -> tuple[ResourceGraph, list[CompiledFunction]]:
    """
    Compile a whole service, starting from its core resources.

    Args:
        service: Service definition with artifacts available locally
        hasher: File hasher for this run
        image_resolver: Resolves container image digests
        enforce_hash_update: Re-version every versioned function once
        previous: Earlier snapshot whose retained resources are kept

    Returns:
        The compiled graph and a record per function
    """
    naming = Naming()
    graph = build_core_graph(service, naming)
    compiler = FunctionCompiler(
        service,
        naming=naming,
        hasher=hasher,
        image_resolver=image_resolver,
        enforce_hash_update=enforce_hash_update,
    )
    compiler.compile(service.functions, service.provider, graph)
    if previous is not None:
        carried = graph.carry_retained(previous)
        if carried:
            logger.info("Kept %d retained resources from the previous template", len(carried))
    return graph, compiler.compiled
