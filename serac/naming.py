"""
Logical id and name generation.

All ids are derived deterministically from function and layer names, so
that two functions never share an id within one template and the same
function always gets the same id.
"""

import re


DEFAULT_EXECUTION_ROLE = "IamRoleLambdaExecution"
DEPLOYMENT_BUCKET = "ServerlessDeploymentBucket"
PROVISIONED_CONCURRENCY_ALIAS = "provisioned"
SNAP_START_ALIAS = "snap"

_NON_ALPHANUMERIC = re.compile(r"[^0-9a-zA-Z]")


def normalize_name(name: str) -> str:
    """Upper-case the first character."""
    return name[:1].upper() + name[1:]


def normalize_name_to_alphanumeric(name: str) -> str:
    return normalize_name(
        _NON_ALPHANUMERIC.sub("", name.replace("-", "Dash").replace("_", "Underscore"))
    )


class Naming:
    """Logical ids for the resources compiled from a service."""

    def normalized_function_name(self, function_name: str) -> str:
        return normalize_name_to_alphanumeric(function_name)

    def lambda_logical_id(self, function_name: str) -> str:
        return f"{self.normalized_function_name(function_name)}LambdaFunction"

    def log_group_logical_id(self, function_name: str) -> str:
        return f"{self.normalized_function_name(function_name)}LogGroup"

    def version_logical_id(self, function_name: str, digest: str) -> str:
        """
        Id of an immutable version resource.

        The digest is part of the id because version resources cannot be
        updated in place; any change must produce a new id.
        """
        return f"{self.lambda_logical_id(function_name)}Version{_NON_ALPHANUMERIC.sub('', digest)}"

    def version_output_logical_id(self, function_name: str) -> str:
        return f"{self.lambda_logical_id(function_name)}QualifiedArn"

    def provisioned_concurrency_alias_logical_id(self, function_name: str) -> str:
        return f"{self.normalized_function_name(function_name)}ProvConcLambdaAlias"

    def snap_start_alias_logical_id(self, function_name: str) -> str:
        return f"{self.normalized_function_name(function_name)}SnapStartLambdaAlias"

    def function_url_logical_id(self, function_name: str) -> str:
        return f"{self.lambda_logical_id(function_name)}Url"

    def function_url_output_logical_id(self, function_name: str) -> str:
        return f"{self.lambda_logical_id(function_name)}Url"

    def function_url_permission_logical_id(self, function_name: str) -> str:
        return f"{self.normalized_function_name(function_name)}LambdaPermissionFnUrl"

    def event_invoke_config_logical_id(self, function_name: str) -> str:
        return f"{self.normalized_function_name(function_name)}LambdaEventConfig"

    def layer_logical_id(self, layer_name: str) -> str:
        return f"{normalize_name_to_alphanumeric(layer_name)}LambdaLayer"
