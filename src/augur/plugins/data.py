"""Data-fetch collaborator seam.

Operators never talk to a datastore directly; they ask a
DataFetcherProtocol for a metric slice. Production deployments plug in
their own fetcher (and own any caching). InMemoryDataFetcher serves
pandas frames held in memory or loaded from CSV files, for the CLI and
tests.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

import pandas as pd

from augur.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class MetricSlice:
    """A metric restricted to a time window and dimension filters.

    Attributes:
        metric: Metric (column) name
        start: Window start, epoch ms, inclusive
        end: Window end, epoch ms, exclusive
        dataset: Optional dataset the metric belongs to
        filters: Dimension column -> allowed value(s)
    """

    metric: str
    start: int
    end: int
    dataset: str | None = None
    filters: MappingProxyType[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@runtime_checkable
class DataFetcherProtocol(Protocol):
    """Returns time-series rows for a metric slice.

    The returned frame has a 'timestamp' column (epoch ms) and a column
    named after the metric. Implementations may block on I/O.
    """

    def fetch(self, metric_slice: MetricSlice) -> pd.DataFrame: ...


class InMemoryDataFetcher:
    """Serves metric slices from in-memory DataFrames.

    Frames are keyed by dataset name (or by metric name when no dataset is
    given) and must contain the timestamp column plus one column per
    metric. Dimension columns, if any, are used for filters.
    """

    def __init__(self, frames: Mapping[str, pd.DataFrame], *, timestamp_column: str = "timestamp") -> None:
        self._frames = dict(frames)
        self._timestamp_column = timestamp_column

    @classmethod
    def from_csv(cls, sources: Mapping[str, Path], *, timestamp_column: str = "timestamp") -> InMemoryDataFetcher:
        """Load one CSV per key with pandas."""
        frames = {name: pd.read_csv(path) for name, path in sources.items()}
        for name, frame in frames.items():
            logger.debug("Loaded time series", source=name, rows=len(frame))
        return cls(frames, timestamp_column=timestamp_column)

    def fetch(self, metric_slice: MetricSlice) -> pd.DataFrame:
        """Return rows of the slice, sorted by timestamp.

        Raises:
            KeyError: If neither the dataset nor the metric is known, or
                the metric column is missing
        """
        key = metric_slice.dataset if metric_slice.dataset is not None else metric_slice.metric
        if key not in self._frames:
            raise KeyError(f"No data for '{key}'. Known sources: {', '.join(sorted(self._frames)) or '<none>'}")
        frame = self._frames[key]
        if metric_slice.metric not in frame.columns:
            raise KeyError(f"Source '{key}' has no column '{metric_slice.metric}'")

        ts = frame[self._timestamp_column]
        mask = (ts >= metric_slice.start) & (ts < metric_slice.end)
        for column, wanted in metric_slice.filters.items():
            values = wanted if isinstance(wanted, list | tuple | set | frozenset) else [wanted]
            mask &= frame[column].isin(list(values))

        result = frame.loc[mask, [self._timestamp_column, metric_slice.metric]]
        result = result.rename(columns={self._timestamp_column: "timestamp"})
        return result.sort_values("timestamp", kind="stable").reset_index(drop=True)
