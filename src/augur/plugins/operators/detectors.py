"""Anomaly detector operators.

Both detectors read a 'currentData' input frame (see DataFetcher) and
emit a DETECTION result under 'anomalies'. The percentage-change
detector also needs 'baselineData'.

Common params:
    value_column: series column to evaluate; defaults to the only
        non-timestamp column of the frame
    dimensions: mapping attached to every anomaly (e.g. the enumerated
        variant's dimension values)
"""

from collections.abc import Mapping
from typing import Any

import pandas as pd
from pydantic import Field, model_validator

from augur.contracts import ChangePattern, DetectionPipelineResult, OperatorContext
from augur.core.detection import TIMESTAMP, detect_percentage_change, detect_threshold
from augur.plugins.base import BaseOperator, OperatorConfig
from augur.plugins.operators.data_fetcher import BASELINE_DATA_KEY, CURRENT_DATA_KEY

ANOMALIES_KEY = "anomalies"


class DetectorConfig(OperatorConfig):
    value_column: str | None = None
    dimensions: dict[str, Any] = Field(default_factory=dict)


class PercentageChangeConfig(DetectorConfig):
    percentage_change: float = Field(ge=0, description="Relative change threshold (0.2 = 20%)")
    pattern: ChangePattern = ChangePattern.UP_OR_DOWN


class ThresholdConfig(DetectorConfig):
    min: float | None = None
    max: float | None = None

    @model_validator(mode="after")
    def validate_bounds(self) -> "ThresholdConfig":
        if self.min is None and self.max is None:
            raise ValueError("ThresholdDetector requires 'min', 'max', or both")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"'min' ({self.min}) must not exceed 'max' ({self.max})")
        return self


def _value_column(frame: pd.DataFrame, configured: str | None) -> str:
    if configured is not None:
        return configured
    candidates = [col for col in frame.columns if col != TIMESTAMP]
    if len(candidates) != 1:
        raise ValueError(f"Cannot infer value column from {list(frame.columns)}; set 'value_column'")
    return str(candidates[0])


class PercentageChangeDetector(BaseOperator):
    """Flag points deviating from baseline by at least percentage_change."""

    type_tag = "PercentageChangeDetector"
    config_class = PercentageChangeConfig
    output_key = ANOMALIES_KEY

    def execute(self, ctx: OperatorContext) -> Mapping[str, Any]:
        cfg: PercentageChangeConfig = self.config
        current = ctx.require_input(CURRENT_DATA_KEY)
        baseline = ctx.require_input(BASELINE_DATA_KEY)
        column = _value_column(current, cfg.value_column)
        result = detect_percentage_change(
            current,
            baseline,
            interval=ctx.interval,
            percentage_change=cfg.percentage_change,
            pattern=cfg.pattern,
            value_col=column,
            metric=column,
            dimensions=cfg.dimensions,
        )
        return {self.output_key: DetectionPipelineResult.detection(result)}


class ThresholdDetector(BaseOperator):
    """Flag points outside a fixed [min, max] band."""

    type_tag = "ThresholdDetector"
    config_class = ThresholdConfig
    output_key = ANOMALIES_KEY

    def execute(self, ctx: OperatorContext) -> Mapping[str, Any]:
        cfg: ThresholdConfig = self.config
        current = ctx.require_input(CURRENT_DATA_KEY)
        column = _value_column(current, cfg.value_column)
        result = detect_threshold(
            current,
            interval=ctx.interval,
            min_value=cfg.min,
            max_value=cfg.max,
            value_col=column,
            metric=column,
            dimensions=cfg.dimensions,
        )
        return {self.output_key: DetectionPipelineResult.detection(result)}
