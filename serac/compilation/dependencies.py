"""
Creation-order wiring between compiled resources.

Functions depend on their log group and any declared resources. Resources
that invoke a function through an alias (URLs, async invoke configs) depend
on that alias, because the alias is created after the version it points to.
"""

from dataclasses import dataclass
from typing import Any

from serac.config.function import FunctionConfig
from serac.naming import Naming
from serac.template.graph import Resource
from serac.template.intrinsics import get_att, join


@dataclass(frozen=True)
class TargetAlias:
    """Alias that invocations of a function should go through."""

    name: str
    logical_id: str


def attach_declared_dependencies(resource: Resource, function: FunctionConfig) -> None:
    if not function.depends_on:
        return
    if isinstance(function.depends_on, str):
        resource.add_dependency(function.depends_on)
    else:
        resource.add_dependency(*function.depends_on)


def attach_log_group(resource: Resource, function_name: str, function: FunctionConfig,
                     naming: Naming) -> None:
    """The log group goes first so it exists before the function first logs."""
    if function.disable_logs:
        return
    resource.add_dependency(naming.log_group_logical_id(function_name), prepend=True)


def attach_alias(resource: Resource, alias: TargetAlias | None) -> None:
    if alias is not None:
        resource.add_dependency(alias.logical_id)


def lambda_target(naming: Naming, function_name: str, alias: TargetAlias | None) -> dict[str, Any]:
    """Most specific invocation target: the alias ARN, else the function ARN."""
    function_arn = get_att(naming.lambda_logical_id(function_name), "Arn")
    if alias is None:
        return function_arn
    return join(":", [function_arn, alias.name])
