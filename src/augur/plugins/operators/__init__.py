"""Built-in operators.

Registered with the OperatorRegistry through the BuiltinOperators
hook implementation below; there is no directory scanning or dynamic
import, the set is fixed at import time.
"""

from augur.plugins.hookspecs import hookimpl
from augur.plugins.operators.data_fetcher import DataFetcher
from augur.plugins.operators.detectors import PercentageChangeDetector, ThresholdDetector
from augur.plugins.operators.echo import Echo
from augur.plugins.operators.enumerator import Enumerator
from augur.plugins.protocols import OperatorClass

BUILTIN_OPERATORS: tuple[OperatorClass, ...] = (
    Echo,
    Enumerator,
    DataFetcher,
    PercentageChangeDetector,
    ThresholdDetector,
)


class BuiltinOperators:
    """pluggy plugin contributing the built-in operator classes."""

    @hookimpl
    def augur_get_operators(self) -> list[OperatorClass]:
        return list(BUILTIN_OPERATORS)


__all__ = [
    "BUILTIN_OPERATORS",
    "BuiltinOperators",
    "DataFetcher",
    "Echo",
    "Enumerator",
    "PercentageChangeDetector",
    "ThresholdDetector",
]
