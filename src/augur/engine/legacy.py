# src/augur/engine/legacy.py
"""Legacy (non-graph) detection path for flat alert configurations.

Older alerts carry no template, only flat properties describing one
monolithic pipeline:

    properties:
      metric: page_views
      dataset: web_traffic
      filters: {country: US}
      offset_ms: 604800000        # baseline = same window one week earlier
      detector:
        type: PERCENTAGE_CHANGE
        percentage_change: 0.2
        pattern: UP_OR_DOWN

LegacyDetectionPipeline runs fetch + detect synchronously with the same
detection math as the plan operators and returns its own result type.
Kept for compatibility only; new alerts use plan templates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any

import pandas as pd
from pydantic import BaseModel, Field, ValidationError, model_validator

from augur.contracts import (
    Alert,
    Anomaly,
    AugurError,
    ChangePattern,
    DetectionInterval,
    DetectionResult,
    PipelineExecutionError,
)
from augur.core.detection import detect_percentage_change, detect_threshold
from augur.core.logging import get_logger
from augur.plugins.data import DataFetcherProtocol, MetricSlice

logger = get_logger(__name__)

ONE_WEEK_MS = 7 * 24 * 60 * 60 * 1000
# Node name reported by PipelineExecutionError for legacy failures
LEGACY_NODE_NAME = "legacy"


class LegacyDetectorType(StrEnum):
    PERCENTAGE_CHANGE = "PERCENTAGE_CHANGE"
    THRESHOLD = "THRESHOLD"


class LegacyDetectorSettings(BaseModel):
    """Detector block of a flat alert."""

    model_config = {"frozen": True, "extra": "forbid"}

    type: LegacyDetectorType
    percentage_change: float | None = Field(default=None, ge=0)
    pattern: ChangePattern = ChangePattern.UP_OR_DOWN
    min: float | None = None
    max: float | None = None

    @model_validator(mode="after")
    def validate_detector_params(self) -> LegacyDetectorSettings:
        if self.type == LegacyDetectorType.PERCENTAGE_CHANGE and self.percentage_change is None:
            raise ValueError("PERCENTAGE_CHANGE detector requires 'percentage_change'")
        if self.type == LegacyDetectorType.THRESHOLD and self.min is None and self.max is None:
            raise ValueError("THRESHOLD detector requires 'min', 'max', or both")
        return self


class LegacyAlertProperties(BaseModel):
    """Flat properties of a legacy alert."""

    model_config = {"frozen": True, "extra": "ignore"}

    metric: str
    dataset: str | None = None
    filters: dict[str, Any] = Field(default_factory=dict)
    offset_ms: int = Field(default=ONE_WEEK_MS, gt=0)
    detector: LegacyDetectorSettings


@dataclass(frozen=True)
class LegacyPipelineResult:
    """Outcome of a legacy run.

    Attributes:
        anomalies: Anomalies found in the window
        last_timestamp: Latest data point evaluated, or -1 when the window
            had no data
        diagnostics: Free-form run details (row counts, detector type)
    """

    anomalies: tuple[Anomaly, ...]
    last_timestamp: int
    diagnostics: MappingProxyType[str, Any] = field(default_factory=lambda: MappingProxyType({}))


class LegacyConfigError(AugurError, ValueError):
    """Raised when a flat alert's properties cannot build a pipeline."""


class LegacyDetectionPipeline:
    """One fetch-and-detect pipeline built from flat alert properties."""

    def __init__(self, properties: LegacyAlertProperties, data_fetcher: DataFetcherProtocol, *, alert_name: str | None = None) -> None:
        self._properties = properties
        self._fetcher = data_fetcher
        self._alert_name = alert_name

    @classmethod
    def from_alert(cls, alert: Alert, data_fetcher: DataFetcherProtocol) -> LegacyDetectionPipeline:
        """Build the pipeline from an alert's flat properties.

        Raises:
            LegacyConfigError: If the properties are incomplete or invalid
        """
        try:
            properties = LegacyAlertProperties.model_validate(alert.properties)
        except ValidationError as e:
            raise LegacyConfigError(f"Alert '{alert.name}' has invalid legacy properties: {e}") from e
        return cls(properties, data_fetcher, alert_name=alert.name)

    def run(self, start: int, end: int) -> LegacyPipelineResult:
        """Fetch and detect over [start, end).

        Raises:
            LegacyConfigError: If the detector block lacks its parameters
            PipelineExecutionError: If fetching or detection fails
        """
        interval = DetectionInterval(start, end)
        props = self._properties
        detector = props.detector
        if detector.type == LegacyDetectorType.PERCENTAGE_CHANGE and detector.percentage_change is None:
            raise LegacyConfigError(f"Alert '{self._alert_name}': PERCENTAGE_CHANGE detector requires 'percentage_change'")

        try:
            current, result = self._fetch_and_detect(interval)
        except Exception as e:
            logger.error("Legacy pipeline failed", alert_name=self._alert_name, error=str(e), error_type=type(e).__name__)
            raise PipelineExecutionError(LEGACY_NODE_NAME, e) from e

        logger.info(
            "Legacy pipeline finished",
            alert_name=self._alert_name,
            detector=str(detector.type),
            rows=len(current),
            anomalies=len(result.anomalies),
        )
        return LegacyPipelineResult(
            anomalies=result.anomalies,
            last_timestamp=_last_timestamp(result),
            diagnostics=MappingProxyType({"detector": str(detector.type), "rows": len(current)}),
        )

    def _fetch_and_detect(self, interval: DetectionInterval) -> tuple[pd.DataFrame, DetectionResult]:
        props = self._properties
        detector = props.detector
        filters = MappingProxyType(dict(props.filters))
        current = self._fetcher.fetch(
            MetricSlice(metric=props.metric, dataset=props.dataset, start=interval.start, end=interval.end, filters=filters)
        )

        if detector.type == LegacyDetectorType.PERCENTAGE_CHANGE:
            baseline_window = interval.shifted(props.offset_ms)
            baseline = self._fetcher.fetch(
                MetricSlice(
                    metric=props.metric,
                    dataset=props.dataset,
                    start=baseline_window.start,
                    end=baseline_window.end,
                    filters=filters,
                )
            )
            baseline = baseline.assign(timestamp=baseline["timestamp"] + props.offset_ms)
            result = detect_percentage_change(
                current,
                baseline,
                interval=interval,
                percentage_change=detector.percentage_change or 0.0,
                pattern=detector.pattern,
                value_col=props.metric,
                metric=props.metric,
                dimensions=props.filters,
            )
        else:
            result = detect_threshold(
                current,
                interval=interval,
                min_value=detector.min,
                max_value=detector.max,
                value_col=props.metric,
                metric=props.metric,
                dimensions=props.filters,
            )
        return current, result


def _last_timestamp(result: DetectionResult) -> int:
    frame = result.timeseries
    if frame is None or frame.empty:
        return -1
    return int(frame["timestamp"].max())
