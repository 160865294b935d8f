"""
Template model for serac.

The resource graph, the shared execution policy and the core resources a
service starts from.
"""

from serac.template.graph import RETAIN, Resource, ResourceGraph
from serac.template.policy import ExecutionPolicy, StatementList
from serac.template.core import build_core_graph, deployment_bucket

__all__ = [
    "RETAIN",
    "Resource",
    "ResourceGraph",
    "ExecutionPolicy",
    "StatementList",
    "build_core_graph",
    "deployment_bucket",
]
