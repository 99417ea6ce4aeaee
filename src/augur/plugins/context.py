"""Resources handed to operators at construction time.

Operators receive collaborators here, never through params, so that
params stay plain declarative data that can be substituted per variant.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from augur.plugins.data import DataFetcherProtocol


@dataclass(frozen=True, slots=True)
class OperatorResources:
    """External collaborators available to operators.

    Attributes:
        data_fetcher: Time-series data access, or None when the run has no
            data source (operators that need one fail at execution)
    """

    data_fetcher: DataFetcherProtocol | None = None
