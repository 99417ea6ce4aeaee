# src/augur/contracts/results.py
"""Result types produced by operators and returned by the runner.

DetectionPipelineResult is a tagged variant:

- DETECTION: one or more DetectionResult (anomalies + time series)
- PASSTHROUGH: an opaque payload (e.g. Echo output)
- EMPTY: the terminal stream exists but produced nothing (zero variants)

There is no "absent" value. When a run has nothing to return the
aggregator raises NoTerminalOutputError instead of returning None, so
callers can always tell "empty" from "absent".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from augur.contracts.errors import InvalidIntervalError

if TYPE_CHECKING:
    import pandas as pd


class ResultKind(StrEnum):
    """Variant tag of a DetectionPipelineResult."""

    DETECTION = "detection"
    PASSTHROUGH = "passthrough"
    EMPTY = "empty"


class ChangePattern(StrEnum):
    """Direction of change a detector reports as anomalous."""

    UP = "UP"
    DOWN = "DOWN"
    UP_OR_DOWN = "UP_OR_DOWN"


@dataclass(frozen=True, slots=True)
class DetectionInterval:
    """Half-open detection window [start, end) in epoch milliseconds."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise InvalidIntervalError(f"Detection interval start ({self.start}) must be before end ({self.end})")

    def contains(self, timestamp: int) -> bool:
        return self.start <= timestamp < self.end

    def shifted(self, offset_ms: int) -> DetectionInterval:
        """Return the window moved back by offset_ms (baseline windows)."""
        return DetectionInterval(self.start - offset_ms, self.end - offset_ms)

    @property
    def duration_ms(self) -> int:
        return self.end - self.start


@dataclass(frozen=True, slots=True)
class Anomaly:
    """A contiguous anomalous range found by a detector."""

    start_time: int
    end_time: int
    current: float
    baseline: float | None = None
    score: float | None = None
    metric: str | None = None
    dimensions: MappingProxyType[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class DetectionResult:
    """Anomalies plus the time series they were detected on.

    timeseries is a pandas DataFrame with at least 'timestamp' and
    'current' columns; detectors add 'baseline', 'upper_bound',
    'lower_bound' and 'anomaly' where they compute them.
    """

    anomalies: tuple[Anomaly, ...]
    timeseries: pd.DataFrame | None = None


@dataclass(frozen=True, slots=True)
class EnumerationItem:
    """One enumerated variant: zero-based index plus parameter overrides."""

    index: int
    params: MappingProxyType[str, Any]

    @classmethod
    def create(cls, index: int, params: dict[str, Any]) -> EnumerationItem:
        return cls(index=index, params=MappingProxyType(dict(params)))


@dataclass(frozen=True, slots=True)
class RunMetadata:
    """Run identity attached to the pipeline-level result."""

    run_id: str
    alert_id: int | str | None
    alert_name: str | None
    interval: DetectionInterval


@dataclass(frozen=True)
class DetectionPipelineResult:
    """Tagged result of a plan node or of a whole run.

    Use the factory classmethods rather than the constructor.
    """

    kind: ResultKind
    detection_results: tuple[DetectionResult, ...] = ()
    payload: Any = None
    metadata: RunMetadata | None = None

    @classmethod
    def detection(cls, *results: DetectionResult) -> DetectionPipelineResult:
        return cls(kind=ResultKind.DETECTION, detection_results=tuple(results))

    @classmethod
    def passthrough(cls, payload: Any) -> DetectionPipelineResult:
        return cls(kind=ResultKind.PASSTHROUGH, payload=payload)

    @classmethod
    def empty(cls) -> DetectionPipelineResult:
        return cls(kind=ResultKind.EMPTY)

    @property
    def is_empty(self) -> bool:
        return self.kind == ResultKind.EMPTY

    @property
    def anomalies(self) -> tuple[Anomaly, ...]:
        """All anomalies across detection results, in result order."""
        return tuple(anomaly for result in self.detection_results for anomaly in result.anomalies)
