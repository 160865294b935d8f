"""
The shared execution policy.

Every function that runs under the provider-managed execution role adds the
permissions it needs (dead letter target, KMS key, tracing, EFS,
destinations) to one inline policy document. Statements are de-duplicated by
full structural equality, not by (effect, action, resource).
"""

import copy
import threading
from typing import Any, Iterator

from serac.naming import DEFAULT_EXECUTION_ROLE
from serac.template.graph import ResourceGraph


class StatementList:
    """
    Ordered list of policy statements with deep-equality insertion.

    Wraps an existing list in place, so the template that owns the list
    sees every insertion.
    """

    def __init__(self, statements: list[dict[str, Any]] | None = None):
        self._statements = statements if statements is not None else []
        self._lock = threading.Lock()

    def add(self, statement: dict[str, Any]) -> bool:
        """
        Append a statement unless a structurally equal one is present.

        Returns:
            True if the statement was appended
        """
        with self._lock:
            if statement in self._statements:
                return False
            self._statements.append(copy.deepcopy(statement))
            return True

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self._statements)

    def __len__(self) -> int:
        return len(self._statements)

    def __contains__(self, statement: object) -> bool:
        return statement in self._statements


class ExecutionPolicy:
    """
    Inline policy of the provider-managed execution role.

    Builders receive this object and call ``allow``; they never reach into
    the role resource themselves.
    """

    def __init__(self, statements: list[dict[str, Any]]):
        self.statements = StatementList(statements)

    @classmethod
    def from_graph(cls, graph: ResourceGraph) -> "ExecutionPolicy | None":
        """
        Bind to the default execution role's policy in a graph.

        Returns None when the graph has no default execution role, i.e. no
        function relies on it.
        """
        role = graph.get(DEFAULT_EXECUTION_ROLE)
        if role is None:
            return None
        policies = role.properties.setdefault("Policies", [])
        if not policies:
            policies.append({"PolicyName": "default", "PolicyDocument": {}})
        document = policies[0].setdefault("PolicyDocument", {})
        document.setdefault("Version", "2012-10-17")
        return cls(document.setdefault("Statement", []))

    def allow(self, actions: str | list[str], resources: Any, sid: str | None = None) -> bool:
        """Grant actions on resources. Returns False if already granted."""
        statement: dict[str, Any] = {}
        if sid:
            statement["Sid"] = sid
        statement["Effect"] = "Allow"
        statement["Action"] = actions
        statement["Resource"] = resources
        return self.statements.add(statement)

    def __len__(self) -> int:
        return len(self.statements)
