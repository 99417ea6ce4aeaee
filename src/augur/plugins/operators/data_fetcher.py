"""DataFetcher operator: loads the current (and optional baseline) series.

Params:
    metric: metric/column name (required)
    dataset: dataset the metric lives in (optional)
    filters: dimension column -> value or list of values
    offset_ms: when set, also fetch the window shifted back by
        this offset and emit it as 'baselineData', with timestamps moved
        forward so both frames join on 'timestamp'
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, ClassVar

from pydantic import Field

from augur.contracts import MissingDataFetcherError, OperatorContext
from augur.core.logging import get_logger
from augur.plugins.base import BaseOperator, OperatorConfig
from augur.plugins.data import MetricSlice

logger = get_logger(__name__)

CURRENT_DATA_KEY = "currentData"
BASELINE_DATA_KEY = "baselineData"


class DataFetcherConfig(OperatorConfig):
    metric: str
    dataset: str | None = None
    filters: dict[str, Any] = Field(default_factory=dict)
    offset_ms: int | None = Field(default=None, gt=0)


class DataFetcher(BaseOperator):
    """Fetch time series through the run's data-fetch collaborator."""

    type_tag = "DataFetcher"
    config_class = DataFetcherConfig
    output_keys: ClassVar[tuple[str, ...]] = (CURRENT_DATA_KEY, BASELINE_DATA_KEY)

    def execute(self, ctx: OperatorContext) -> Mapping[str, Any]:
        cfg: DataFetcherConfig = self.config
        fetcher = self.resources.data_fetcher
        if fetcher is None:
            raise MissingDataFetcherError(f"DataFetcher node '{self.name}' needs a data fetcher but the run has none configured")

        filters = MappingProxyType(dict(cfg.filters))
        current = fetcher.fetch(
            MetricSlice(metric=cfg.metric, dataset=cfg.dataset, start=ctx.interval.start, end=ctx.interval.end, filters=filters)
        )
        outputs: dict[str, Any] = {CURRENT_DATA_KEY: current}
        logger.debug("Fetched current data", node=self.name, metric=cfg.metric, rows=len(current))

        if cfg.offset_ms is not None:
            shifted = ctx.interval.shifted(cfg.offset_ms)
            baseline = fetcher.fetch(
                MetricSlice(metric=cfg.metric, dataset=cfg.dataset, start=shifted.start, end=shifted.end, filters=filters)
            )
            outputs[BASELINE_DATA_KEY] = baseline.assign(timestamp=baseline["timestamp"] + cfg.offset_ms)
            logger.debug("Fetched baseline data", node=self.name, metric=cfg.metric, rows=len(baseline))
        return outputs
