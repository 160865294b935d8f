"""
Resource graph: the compiled template.

A ``ResourceGraph`` maps logical ids to ``Resource`` descriptions and keeps
an outputs section. It is created by the core template builder, grown
additively by the function compiler and finally serialized to a
CloudFormation template.
"""

import copy
from dataclasses import dataclass, field
from typing import Any

from serac.errors import DanglingDependencyError, DuplicateResourceError


RETAIN = "Retain"


@dataclass
class Resource:
    """
    One typed resource description.

    ``source_name`` records the service entity (function or layer name) a
    resource was compiled from. It is not part of the template.
    """

    type: str
    """Resource type, e.g. AWS::Lambda::Function"""

    properties: dict[str, Any] = field(default_factory=dict)
    """Property bag"""

    depends_on: list[str] = field(default_factory=list)
    """Explicit creation-order dependencies (logical ids)"""

    condition: str | None = None
    """Condition name gating creation"""

    deletion_policy: str | None = None
    """Retain keeps the physical resource when it leaves the template"""

    source_name: str | None = field(default=None, compare=False)

    @property
    def retained(self) -> bool:
        return self.deletion_policy == RETAIN

    def add_dependency(self, *logical_ids: str, prepend: bool = False) -> None:
        new = [i for i in logical_ids if i and i not in self.depends_on]
        if prepend:
            self.depends_on = new + self.depends_on
        else:
            self.depends_on.extend(new)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"Type": self.type}
        if self.deletion_policy:
            result["DeletionPolicy"] = self.deletion_policy
        if self.condition:
            result["Condition"] = self.condition
        result["Properties"] = copy.deepcopy(self.properties)
        if self.depends_on:
            result["DependsOn"] = list(self.depends_on)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Resource":
        depends_on = data.get("DependsOn") or []
        if isinstance(depends_on, str):
            depends_on = [depends_on]
        return cls(
            type=data["Type"],
            properties=copy.deepcopy(data.get("Properties") or {}),
            depends_on=list(depends_on),
            condition=data.get("Condition"),
            deletion_policy=data.get("DeletionPolicy"),
        )


@dataclass
class ResourceGraph:
    """
    Mapping of logical id to resource, plus template outputs.

    Resources are only ever added. Adding a different resource under an id
    that is already taken is an error, so that one function can never
    overwrite another's resources.
    """

    resources: dict[str, Resource] = field(default_factory=dict)
    outputs: dict[str, dict[str, Any]] = field(default_factory=dict)

    def __contains__(self, logical_id: str) -> bool:
        return logical_id in self.resources

    def __len__(self) -> int:
        return len(self.resources)

    def get(self, logical_id: str) -> Resource | None:
        return self.resources.get(logical_id)

    def add(self, logical_id: str, resource: Resource) -> Resource:
        """
        Insert a resource.

        Re-adding a deep-equal resource under the same id returns the
        existing one.

        Raises:
            DuplicateResourceError: If the id holds a different resource
        """
        existing = self.resources.get(logical_id)
        if existing is not None:
            if existing == resource:
                return existing
            raise DuplicateResourceError(
                f'Logical id "{logical_id}" is already used by another '
                f"{existing.type} resource",
                resource.source_name,
            )
        self.resources[logical_id] = resource
        return resource

    def add_output(self, logical_id: str, value: Any, description: str) -> None:
        self.outputs[logical_id] = {"Description": description, "Value": value}

    def of_type(self, resource_type: str) -> dict[str, Resource]:
        return {i: r for i, r in self.resources.items() if r.type == resource_type}

    def validate(self) -> None:
        """
        Check that every dependency resolves to a resource in the graph.

        Raises:
            DanglingDependencyError: On the first unresolved dependency
        """
        for logical_id, resource in self.resources.items():
            for dependency in resource.depends_on:
                if dependency not in self.resources:
                    raise DanglingDependencyError(
                        f'Resource "{logical_id}" depends on "{dependency}", '
                        f"which is not defined in the template",
                        resource.source_name,
                    )

    def carry_retained(self, previous: "ResourceGraph") -> list[str]:
        """
        Copy retained resources of a previous snapshot into this graph.

        Versions are retained on delete, so a merge with an older snapshot
        keeps every version it had, even for functions that are gone.

        Returns:
            Logical ids that were carried over
        """
        carried = []
        for logical_id, resource in previous.resources.items():
            if resource.retained and logical_id not in self.resources:
                self.resources[logical_id] = copy.deepcopy(resource)
                carried.append(logical_id)
        return carried

    def to_template(self) -> dict[str, Any]:
        return {
            "AWSTemplateFormatVersion": "2010-09-09",
            "Description": "The AWS CloudFormation template for this Serverless application",
            "Resources": {i: r.to_dict() for i, r in self.resources.items()},
            "Outputs": copy.deepcopy(self.outputs),
        }

    @classmethod
    def from_template(cls, template: dict[str, Any]) -> "ResourceGraph":
        return cls(
            resources={
                i: Resource.from_dict(r) for i, r in (template.get("Resources") or {}).items()
            },
            outputs=copy.deepcopy(template.get("Outputs") or {}),
        )
