# src/augur/core/detection.py
"""Detection rules over pandas time series.

Shared by the plan operators and the legacy pipeline so both paths flag
exactly the same points. Every function takes already-fetched frames
and returns a DetectionResult; none of them perform I/O.

Frame conventions:
- A 'timestamp' column (epoch milliseconds) plus one value column.
- Baseline frames are aligned to the current window (the fetcher shifts
  baseline timestamps forward by the offset), so they join on 'timestamp'.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import pandas as pd

from augur.contracts import Anomaly, ChangePattern, DetectionInterval, DetectionResult

TIMESTAMP = "timestamp"
CURRENT = "current"
BASELINE = "baseline"
UPPER_BOUND = "upper_bound"
LOWER_BOUND = "lower_bound"
ANOMALY = "anomaly"


def _prepare(frame: pd.DataFrame, *, timestamp_col: str, value_col: str, interval: DetectionInterval, as_col: str) -> pd.DataFrame:
    missing = [col for col in (timestamp_col, value_col) if col not in frame.columns]
    if missing:
        raise ValueError(f"Time series is missing column(s) {missing}; available: {list(frame.columns)}")
    out = pd.DataFrame(
        {
            TIMESTAMP: frame[timestamp_col].astype("int64"),
            as_col: pd.to_numeric(frame[value_col], errors="coerce").astype("float64"),
        }
    )
    in_window = (out[TIMESTAMP] >= interval.start) & (out[TIMESTAMP] < interval.end)
    return out.loc[in_window].sort_values(TIMESTAMP, kind="stable").reset_index(drop=True)


def _granularity_ms(timestamps: pd.Series) -> int:
    """Median spacing between points; 1 ms when there is nothing to measure."""
    if len(timestamps) < 2:
        return 1
    return max(int(timestamps.diff().median()), 1)


def build_anomalies(
    frame: pd.DataFrame,
    *,
    metric: str | None = None,
    dimensions: Mapping[str, Any] | None = None,
) -> tuple[Anomaly, ...]:
    """Merge consecutive flagged rows into anomaly ranges.

    Each range is [first flagged timestamp, timestamp after the last
    flagged row); the last row of the frame extends by one granularity.
    """
    if frame.empty or not frame[ANOMALY].any():
        return ()

    granularity = _granularity_ms(frame[TIMESTAMP])
    frozen_dims = MappingProxyType(dict(dimensions or {}))
    timestamps = frame[TIMESTAMP].to_list()
    flags = frame[ANOMALY].to_list()
    currents = frame[CURRENT].to_list()
    baselines = frame[BASELINE].to_list() if BASELINE in frame.columns else [None] * len(frame)

    anomalies: list[Anomaly] = []
    row = 0
    while row < len(frame):
        if not flags[row]:
            row += 1
            continue
        first = row
        while row + 1 < len(frame) and flags[row + 1]:
            row += 1
        end_time = timestamps[row + 1] if row + 1 < len(frame) else timestamps[row] + granularity
        peak = max(range(first, row + 1), key=lambda i: abs(currents[i]) if not math.isnan(currents[i]) else -1.0)
        baseline = baselines[peak]
        anomalies.append(
            Anomaly(
                start_time=int(timestamps[first]),
                end_time=int(end_time),
                current=float(currents[peak]),
                baseline=None if baseline is None or math.isnan(baseline) else float(baseline),
                metric=metric,
                dimensions=frozen_dims,
            )
        )
        row += 1
    return tuple(anomalies)


def _change_ratio(current: float, baseline: float) -> float:
    if baseline == 0:
        return 0.0 if current == 0 else math.nan
    return (current - baseline) / baseline


def detect_percentage_change(
    current: pd.DataFrame,
    baseline: pd.DataFrame,
    *,
    interval: DetectionInterval,
    percentage_change: float,
    pattern: ChangePattern = ChangePattern.UP_OR_DOWN,
    timestamp_col: str = TIMESTAMP,
    value_col: str = "value",
    metric: str | None = None,
    dimensions: Mapping[str, Any] | None = None,
) -> DetectionResult:
    """Flag points whose relative change versus baseline reaches the threshold.

    Args:
        percentage_change: Threshold as a ratio (0.1 = 10%)
        pattern: UP flags increases only, DOWN decreases only

    Raises:
        ValueError: On negative thresholds or missing columns
    """
    if percentage_change < 0:
        raise ValueError(f"percentage_change must be >= 0, got {percentage_change}")

    cur = _prepare(current, timestamp_col=timestamp_col, value_col=value_col, interval=interval, as_col=CURRENT)
    base = _prepare(baseline, timestamp_col=timestamp_col, value_col=value_col, interval=interval, as_col=BASELINE)
    df = cur.merge(base, on=TIMESTAMP, how="inner")

    change = pd.Series(
        [_change_ratio(c, b) for c, b in zip(df[CURRENT], df[BASELINE], strict=True)],
        index=df.index,
        dtype="float64",
    )
    if pattern == ChangePattern.UP:
        direction = change > 0
    elif pattern == ChangePattern.DOWN:
        direction = change < 0
    else:
        direction = pd.Series(True, index=df.index)

    df["change"] = change
    df[ANOMALY] = (change.abs() >= percentage_change) & direction & change.notna()
    df[UPPER_BOUND] = df[BASELINE] * (1 + percentage_change) if pattern != ChangePattern.DOWN else math.inf
    df[LOWER_BOUND] = df[BASELINE] * (1 - percentage_change) if pattern != ChangePattern.UP else -math.inf
    return DetectionResult(anomalies=build_anomalies(df, metric=metric, dimensions=dimensions), timeseries=df)


def detect_threshold(
    current: pd.DataFrame,
    *,
    interval: DetectionInterval,
    min_value: float | None = None,
    max_value: float | None = None,
    timestamp_col: str = TIMESTAMP,
    value_col: str = "value",
    metric: str | None = None,
    dimensions: Mapping[str, Any] | None = None,
) -> DetectionResult:
    """Flag points outside [min_value, max_value]; either bound may be open.

    Raises:
        ValueError: If both bounds are missing or min_value > max_value
    """
    if min_value is None and max_value is None:
        raise ValueError("Threshold detection needs at least one of min or max")
    if min_value is not None and max_value is not None and min_value > max_value:
        raise ValueError(f"min ({min_value}) must not exceed max ({max_value})")

    df = _prepare(current, timestamp_col=timestamp_col, value_col=value_col, interval=interval, as_col=CURRENT)
    lower = -math.inf if min_value is None else float(min_value)
    upper = math.inf if max_value is None else float(max_value)
    df[LOWER_BOUND] = lower
    df[UPPER_BOUND] = upper
    df[ANOMALY] = ((df[CURRENT] < lower) | (df[CURRENT] > upper)) & df[CURRENT].notna()
    return DetectionResult(anomalies=build_anomalies(df, metric=metric, dimensions=dimensions), timeseries=df)
