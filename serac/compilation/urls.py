"""
Function URL resources.

A URL is bound to the function's most specific invocation target. Public
URLs (no authorizer) also get a permission that lets anyone invoke them.
"""

from typing import Any

from serac.compilation.dependencies import TargetAlias, attach_alias, lambda_target
from serac.config.function import CorsConfig, UrlConfig
from serac.naming import Naming
from serac.template.graph import Resource, ResourceGraph
from serac.template.intrinsics import get_att


DEFAULT_CORS = {
    "allowed_origins": ["*"],
    "allowed_headers": [
        "Content-Type",
        "X-Amz-Date",
        "Authorization",
        "X-Api-Key",
        "X-Amz-Security-Token",
        "X-Amzn-Trace-Id",
    ],
    "allowed_methods": ["*"],
}

# Overridable list fields: a list replaces the default, null removes it.
_CORS_LISTS = ("allowed_origins", "allowed_headers", "allowed_methods")


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def resolve_cors(cors: CorsConfig | bool | None) -> dict[str, Any] | None:
    """
    Merge CORS overrides over the default policy.

    Returns:
        CORS settings keyed by field name, or None when CORS is off
    """
    if not cors:
        return None
    if cors is True:
        cors = CorsConfig()

    resolved: dict[str, Any] = {k: list(v) for k, v in DEFAULT_CORS.items()}
    for field_name in _CORS_LISTS:
        value = getattr(cors, field_name)
        if value:
            resolved[field_name] = _unique(value)
        elif cors.is_cleared(field_name):
            del resolved[field_name]

    if cors.allow_credentials:
        resolved["allow_credentials"] = True
    if cors.exposed_response_headers:
        resolved["exposed_response_headers"] = _unique(cors.exposed_response_headers)
    if cors.max_age is not None:
        resolved["max_age"] = cors.max_age
    return resolved


def _cors_properties(cors: dict[str, Any]) -> dict[str, Any]:
    mapping = {
        "allow_credentials": "AllowCredentials",
        "allowed_headers": "AllowHeaders",
        "allowed_methods": "AllowMethods",
        "allowed_origins": "AllowOrigins",
        "exposed_response_headers": "ExposeHeaders",
        "max_age": "MaxAge",
    }
    return {prop: cors[key] for key, prop in mapping.items() if key in cors}


def compile_function_url(
    function_name: str,
    url: UrlConfig | bool | None,
    graph: ResourceGraph,
    naming: Naming,
    alias: TargetAlias | None = None,
) -> str | None:
    """
    Add the URL (and, for public URLs, its permission) to the graph.

    Returns:
        Logical id of the URL resource, or None when no URL is configured
    """
    if not url:
        return None
    if url is True:
        url = UrlConfig()

    auth = "AWS_IAM" if url.authorizer == "aws_iam" else "NONE"
    target = lambda_target(naming, function_name, alias)

    resource = Resource(
        type="AWS::Lambda::Url",
        properties={"AuthType": auth, "TargetFunctionArn": target},
        source_name=function_name,
    )
    cors = resolve_cors(url.cors)
    if cors is not None:
        resource.properties["Cors"] = _cors_properties(cors)
    if url.invoke_mode == "RESPONSE_STREAM":
        resource.properties["InvokeMode"] = url.invoke_mode
    attach_alias(resource, alias)

    logical_id = naming.function_url_logical_id(function_name)
    graph.add(logical_id, resource)
    graph.add_output(
        naming.function_url_output_logical_id(function_name),
        get_att(logical_id, "FunctionUrl"),
        "Lambda Function URL",
    )

    if auth == "NONE":
        permission = Resource(
            type="AWS::Lambda::Permission",
            properties={
                "FunctionName": lambda_target(naming, function_name, alias),
                "Action": "lambda:InvokeFunctionUrl",
                "Principal": "*",
                "FunctionUrlAuthType": auth,
            },
            source_name=function_name,
        )
        attach_alias(permission, alias)
        graph.add(naming.function_url_permission_logical_id(function_name), permission)

    return logical_id
