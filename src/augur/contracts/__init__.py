"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core,
plugins or engine. Settings classes live in augur.core.config.

Import patterns:
    from augur.contracts import PlanNodeDefinition, DetectionPipelineResult
    from augur.core.config import AugurSettings
"""

from augur.contracts.alert import Alert, AlertTemplate, is_plan_alert
from augur.contracts.context import OperatorContext
from augur.contracts.errors import (
    AugurError,
    GraphValidationError,
    InvalidIntervalError,
    MissingDataFetcherError,
    MissingInputError,
    MultipleRootOutputsError,
    NoTerminalOutputError,
    PipelineExecutionError,
    RunCancelledError,
    TemplateRenderError,
    UnknownNodeTypeError,
)
from augur.contracts.plan import InputRef, PlanNodeDefinition, parse_plan_nodes
from augur.contracts.results import (
    Anomaly,
    ChangePattern,
    DetectionInterval,
    DetectionPipelineResult,
    DetectionResult,
    EnumerationItem,
    ResultKind,
    RunMetadata,
)

__all__ = [
    "Alert",
    "AlertTemplate",
    "Anomaly",
    "AugurError",
    "ChangePattern",
    "DetectionInterval",
    "DetectionPipelineResult",
    "DetectionResult",
    "EnumerationItem",
    "GraphValidationError",
    "InputRef",
    "InvalidIntervalError",
    "MissingDataFetcherError",
    "MissingInputError",
    "MultipleRootOutputsError",
    "NoTerminalOutputError",
    "OperatorContext",
    "PipelineExecutionError",
    "PlanNodeDefinition",
    "ResultKind",
    "RunCancelledError",
    "RunMetadata",
    "TemplateRenderError",
    "UnknownNodeTypeError",
    "is_plan_alert",
    "parse_plan_nodes",
]
