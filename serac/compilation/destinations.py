"""
Asynchronous invocation config: destinations and retry bounds.

Destination targets are classified before any permission is granted:
a ``{type, arn}`` object by its declared type, a string by the pattern of
its ARN (or as a function of this service when it is not an ARN at all).
The ARN patterns are heuristic and kept as-is for compatibility.
"""

import hashlib
import json
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from pydantic import ValidationError

from serac.compilation.dependencies import TargetAlias, attach_alias
from serac.config.function import DestinationTarget, FunctionConfig
from serac.errors import UnsupportedDestinationError
from serac.naming import Naming
from serac.template.graph import Resource, ResourceGraph
from serac.template.intrinsics import function_arn, get_att, ref
from serac.template.policy import ExecutionPolicy

logger = logging.getLogger(__name__)


class DestinationKind(Enum):
    FUNCTION = "lambda:InvokeFunction"
    QUEUE = "sqs:SendMessage"
    TOPIC = "sns:Publish"
    EVENT_BUS = "events:PutEvents"

    @property
    def action(self) -> str:
        return self.value


_DECLARED_TYPES = {
    "function": DestinationKind.FUNCTION,
    "sqs": DestinationKind.QUEUE,
    "sns": DestinationKind.TOPIC,
    "eventBus": DestinationKind.EVENT_BUS,
}

_ARN_PATTERNS = (
    (":function:", DestinationKind.FUNCTION),
    (":sqs:", DestinationKind.QUEUE),
    (":sns:", DestinationKind.TOPIC),
    (":event-bus/", DestinationKind.EVENT_BUS),
)


@dataclass(frozen=True)
class Destination:
    kind: DestinationKind
    pointer: Any
    """ARN string or intrinsic resolving to the target's ARN"""
    function_name: str | None = None
    """Set when the target is a function of this service"""


def classify_destination(
    target: Any,
    owner: str,
    resolve_function_arn: Callable[[str], Any],
) -> Destination:
    """
    Turn a destination target into a kind and a resource pointer.

    Args:
        target: Target as declared on the function
        owner: Name of the function declaring it (for error messages)
        resolve_function_arn: Maps a function name of this service to its ARN

    Raises:
        UnsupportedDestinationError: If the target cannot be classified
    """
    if isinstance(target, dict):
        try:
            target = DestinationTarget.model_validate(target)
        except ValidationError as e:
            raise UnsupportedDestinationError(
                f'Invalid destination target {target} on function "{owner}": {e}',
                owner,
            ) from e

    if isinstance(target, DestinationTarget):
        kind = _DECLARED_TYPES.get(target.type)
        if kind is None:
            raise UnsupportedDestinationError(
                f'Unsupported destination target type "{target.type}" on function "{owner}"',
                owner,
            )
        return Destination(kind, target.arn)

    if not isinstance(target, str):
        raise UnsupportedDestinationError(
            f'Unsupported destination target {target!r} on function "{owner}"',
            owner,
        )
    if not target.startswith("arn:"):
        return Destination(DestinationKind.FUNCTION, resolve_function_arn(target), target)
    for pattern, kind in _ARN_PATTERNS:
        if pattern in target:
            return Destination(kind, target)
    raise UnsupportedDestinationError(
        f'Unsupported destination target {target} on function "{owner}"',
        owner,
    )


class DestinationPermissions:
    """
    Grants functions access to their destinations, once per target.

    Statements carry a Sid derived from the function and the target, so two
    functions sending to the same target get a statement each, while the
    same target declared twice on one function collapses into one.
    """

    def __init__(self, policy: ExecutionPolicy | None, naming: Naming):
        self.policy = policy
        self.naming = naming
        self._granted: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    def ensure(self, function_name: str, destination: Destination) -> bool:
        if self.policy is None:
            return False
        target_key = json.dumps(
            {"kind": destination.kind.name, "pointer": destination.pointer}, sort_keys=True
        )
        with self._lock:
            if (function_name, target_key) in self._granted:
                return False
            self._granted.add((function_name, target_key))
        suffix = hashlib.sha1(target_key.encode("utf-8")).hexdigest()[:10]
        sid = f"{self.naming.normalized_function_name(function_name)}Destination{suffix}"
        return self.policy.allow(destination.kind.action, destination.pointer, sid=sid)


def compile_event_invoke_config(
    function_name: str,
    function: FunctionConfig,
    graph: ResourceGraph,
    naming: Naming,
    permissions: DestinationPermissions,
    resolve_function_arn: Callable[[str], Any],
    manages_own_permissions: bool,
    alias: TargetAlias | None = None,
) -> str | None:
    """
    Add the function's async invoke config to the graph.

    Returns:
        Logical id of the config, or None when nothing is configured
    """
    destinations = function.destinations
    if (
        not destinations
        and not function.maximum_event_age
        and function.maximum_retry_attempts is None
    ):
        return None

    destination_config: dict[str, Any] = {}
    if destinations:
        for key, target in (("OnSuccess", destinations.on_success),
                            ("OnFailure", destinations.on_failure)):
            if not target:
                continue
            destination = classify_destination(target, function_name, resolve_function_arn)
            if destination.function_name:
                # Policy statements keep the Fn::Sub form; the config itself can
                # point at the function resource.
                pointer = get_att(naming.lambda_logical_id(destination.function_name), "Arn")
            else:
                pointer = destination.pointer
            destination_config[key] = {"Destination": pointer}
            if not manages_own_permissions:
                permissions.ensure(function_name, destination)

    resource = Resource(
        type="AWS::Lambda::EventInvokeConfig",
        properties={
            "FunctionName": ref(naming.lambda_logical_id(function_name)),
            "DestinationConfig": destination_config,
            "Qualifier": alias.name if alias else "$LATEST",
        },
        source_name=function_name,
    )
    if function.maximum_event_age:
        resource.properties["MaximumEventAgeInSeconds"] = function.maximum_event_age
    if function.maximum_retry_attempts is not None:
        resource.properties["MaximumRetryAttempts"] = function.maximum_retry_attempts
    attach_alias(resource, alias)

    logical_id = naming.event_invoke_config_logical_id(function_name)
    graph.add(logical_id, resource)
    logger.debug("Compiled async invoke config for %s", function_name)
    return logical_id


def function_arn_resolver(functions: dict[str, FunctionConfig], deployed_name: Callable[[str], str],
                          owner: str) -> Callable[[str], Any]:
    """
    Resolver for destinations naming a function of this service.

    Uses ``Fn::Sub`` rather than ``Fn::GetAtt``: the reference ends up in
    the shared execution policy, which the target function itself depends
    on, and ``Fn::GetAtt`` would create a cycle.
    """
    def resolve(name: str) -> Any:
        if name not in functions:
            raise UnsupportedDestinationError(
                f'Destination of function "{owner}" references unknown function "{name}"',
                owner,
            )
        return function_arn(deployed_name(name))

    return resolve
