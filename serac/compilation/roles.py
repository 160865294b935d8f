"""
Execution role references.

A function's ``role`` can be omitted (the provider-managed default role), a
literal ARN, the logical name of a role in the template, a ``Fn::GetAtt``
object, or another intrinsic. It is classified once into a
``RoleReference`` and never re-inspected by type afterwards.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from serac.naming import DEFAULT_EXECUTION_ROLE
from serac.template.graph import Resource
from serac.template.intrinsics import get_att

logger = logging.getLogger(__name__)


class RoleKind(Enum):
    DEFAULT = "default"
    ARN = "arn"
    LOGICAL = "logical"
    GET_ATT = "get_att"
    INTRINSIC = "intrinsic"


@dataclass(frozen=True)
class RoleReference:
    kind: RoleKind
    value: Any
    """Value for the function's Role property"""

    dependency: str | None = None
    """Role resource the function must be created after"""

    @property
    def is_default(self) -> bool:
        """
        Whether the provider-managed role is used.

        Any other role manages its own permissions; the compiler never
        adds statements on its behalf.
        """
        return self.kind is RoleKind.DEFAULT


def resolve_role(role: str | dict[str, Any] | None) -> RoleReference:
    if role is None or role == DEFAULT_EXECUTION_ROLE:
        return RoleReference(RoleKind.DEFAULT, get_att(DEFAULT_EXECUTION_ROLE, "Arn"))
    if isinstance(role, str):
        if role.startswith("arn:"):
            return RoleReference(RoleKind.ARN, role)
        return RoleReference(RoleKind.LOGICAL, get_att(role, "Arn"), dependency=role)
    if "Fn::GetAtt" in role:
        return RoleReference(RoleKind.GET_ATT, role, dependency=role["Fn::GetAtt"][0])
    return RoleReference(RoleKind.INTRINSIC, role)


def compile_role(resource: Resource, role: RoleReference) -> None:
    """Set the function's Role and wire the dependency on its role resource."""
    resource.properties["Role"] = role.value
    if role.dependency:
        resource.add_dependency(role.dependency)
    logger.debug("Using %s execution role %s", role.kind.value, role.value)
