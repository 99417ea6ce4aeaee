# src/augur/engine/__init__.py
"""Execution engine for Augur detection plans.

This module provides:
- PlanExecutor: dependency-ordered execution of a PlanGraph
- FanOutPlanner: per-variant execution of enumerator dependents
- ResultAggregator: reduction to the single pipeline-level result
- LegacyDetectionPipeline: flat-configuration compatibility path
- DetectionPipelineRunner: path selection and one full alert run

Example:
    from augur.engine import DetectionPipelineRunner
    from augur.core.config import load_settings

    runner = DetectionPipelineRunner.from_settings(load_settings(), data_fetcher=fetcher)
    result = runner.run(alert, start=1000, end=2000)
"""

from augur.engine.aggregator import ResultAggregator
from augur.engine.executor import ExecutionState, OutputStore, PlanExecutor, TerminalOutput, qualified_key
from augur.engine.fanout import FanOutPlanner, enumeration_items, substitute_variant
from augur.engine.legacy import LegacyConfigError, LegacyDetectionPipeline, LegacyPipelineResult
from augur.engine.runner import DetectionPipelineRunner

__all__ = [
    "DetectionPipelineRunner",
    "ExecutionState",
    "FanOutPlanner",
    "LegacyConfigError",
    "LegacyDetectionPipeline",
    "LegacyPipelineResult",
    "OutputStore",
    "PlanExecutor",
    "ResultAggregator",
    "TerminalOutput",
    "enumeration_items",
    "qualified_key",
    "substitute_variant",
]
