# src/augur/core/dag/__init__.py
"""Plan graph construction, validation and dependency ordering.

Package re-exports.
"""

from augur.core.dag.graph import PlanGraph
from augur.core.dag.models import ENUMERATOR_TYPE, GraphValidationError, NodeInfo

__all__ = [
    "ENUMERATOR_TYPE",
    "GraphValidationError",
    "NodeInfo",
    "PlanGraph",
]
