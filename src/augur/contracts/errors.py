"""Exception taxonomy for plan validation and execution.

Every failure surfaces synchronously to the immediate caller. The engine
never retries and never recovers silently; retry policy belongs to the
scheduler that invoked the run.

Configuration errors (raised before any node executes):
- GraphValidationError: duplicate names, unresolved references, cycles
- UnknownNodeTypeError: type tag with no registered factory
- TemplateRenderError: ${property} placeholder with no value
- InvalidIntervalError: detection window with start >= end

Execution errors (abort the run, no partial result):
- PipelineExecutionError: wraps any operator failure
- MissingInputError: invariant violation in input resolution
- RunCancelledError: run stopped between nodes
- MissingDataFetcherError: run needs data but has no fetcher

Aggregation errors:
- MultipleRootOutputsError: more than one terminal output stream
- NoTerminalOutputError: nothing to return
"""

from __future__ import annotations

from collections.abc import Sequence


class AugurError(Exception):
    """Base class for all engine errors."""


class GraphValidationError(AugurError, ValueError):
    """Raised when plan graph validation fails.

    Attributes:
        node_names: Names of the offending node(s), in declaration order
    """

    def __init__(self, message: str, *, node_names: Sequence[str] = ()) -> None:
        self.node_names = tuple(node_names)
        super().__init__(message)


class UnknownNodeTypeError(AugurError, LookupError):
    """Raised when a plan node declares a type tag with no registered factory."""

    def __init__(
        self,
        type_tag: str,
        *,
        node_name: str | None = None,
        available: Sequence[str] = (),
        suggestions: Sequence[str] = (),
    ) -> None:
        self.type_tag = type_tag
        self.node_name = node_name
        self.available = tuple(available)
        self.suggestions = tuple(suggestions)
        where = f" (node '{node_name}')" if node_name else ""
        hint = f" Did you mean: {', '.join(self.suggestions)}?" if self.suggestions else ""
        super().__init__(f"Unknown node type '{type_tag}'{where}.{hint} Available types: {', '.join(self.available) or '<none>'}")


class MissingInputError(AugurError):
    """Raised when a resolved input is absent at execution time.

    After a correct topological sort every producer has already run, so
    this signals a bug in the engine, never a configuration problem.
    """

    def __init__(self, node_name: str, reference: str, variant_index: int | None = None) -> None:
        self.node_name = node_name
        self.reference = reference
        self.variant_index = variant_index
        variant = f" (variant {variant_index})" if variant_index is not None else ""
        super().__init__(f"Node '{node_name}'{variant} has no value for input '{reference}' after its producers executed")


class PipelineExecutionError(AugurError):
    """Wraps an operator failure and aborts the run.

    The original exception is preserved as __cause__.

    Attributes:
        node_name: Plan node whose operator failed
        variant_index: Fan-out variant index, or None outside fan-out
    """

    def __init__(self, node_name: str, cause: BaseException, *, variant_index: int | None = None) -> None:
        self.node_name = node_name
        self.variant_index = variant_index
        variant = f" (variant {variant_index})" if variant_index is not None else ""
        super().__init__(f"Node '{node_name}'{variant} failed: {type(cause).__name__}: {cause}")


class MultipleRootOutputsError(AugurError):
    """Raised when a run ends with more than one terminal output stream."""

    def __init__(self, streams: Sequence[str]) -> None:
        self.streams = tuple(streams)
        super().__init__(
            f"Expected exactly one terminal output, found {len(self.streams)}: {', '.join(self.streams)}. "
            "Tag the intended node with 'terminal: true' and consume the others."
        )


class NoTerminalOutputError(AugurError):
    """Raised when a run produced no terminal output at all."""


class RunCancelledError(AugurError):
    """Raised when a run is cancelled before its next node starts."""

    def __init__(self, next_node: str, executed: int) -> None:
        self.next_node = next_node
        self.executed = executed
        super().__init__(f"Run cancelled before node '{next_node}' ({executed} node(s) executed)")


class TemplateRenderError(AugurError, ValueError):
    """Raised when a ${property} placeholder cannot be resolved."""

    def __init__(self, missing: Sequence[str], *, node_name: str | None = None) -> None:
        self.missing = tuple(sorted(set(missing)))
        self.node_name = node_name
        where = f" in node '{node_name}'" if node_name else ""
        super().__init__(f"Unresolved template properties{where}: {', '.join(self.missing)}")


class MissingDataFetcherError(AugurError, RuntimeError):
    """Raised when a run needs time-series data but no data fetcher is configured."""


class InvalidIntervalError(AugurError, ValueError):
    """Raised when a detection interval has start >= end."""
