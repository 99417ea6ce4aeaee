# src/augur/engine/fanout.py
"""Enumerator fan-out: variant params and variant scheduling.

Every transitive dependent of an enumerator node executes once per
EnumerationItem the enumerator produced. This module holds the pieces
that are specific to that multiplication:

- enumeration_items(): pull the item list out of an enumerator's outputs
- substitute_variant(): render <enumerator.key> placeholders in params
- FanOutPlanner: run one node's variants in index order, optionally on a
  thread pool

Variants never share state. Each one gets its own params copy, its own
OperatorContext and its own operator instance, and results are handed
back indexed by variant so the caller stores them in index order.
"""

from __future__ import annotations

import contextvars
import re
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, TypeVar

from augur.contracts import EnumerationItem, TemplateRenderError
from augur.core.logging import get_logger
from augur.core.templates import VARIANT_PATTERN, find_placeholders, substitute_placeholders

logger = get_logger(__name__)

T = TypeVar("T")


def enumeration_items(enumerator: str, outputs: Mapping[str, Any]) -> tuple[EnumerationItem, ...]:
    """Return the items an enumerator emitted.

    The first output holding a sequence of EnumerationItem is used; an
    enumerator that emitted nothing has zero items.

    Raises:
        TypeError: If the enumerator emitted outputs but none of them is
            an item sequence
    """
    if not outputs:
        return ()
    for value in outputs.values():
        if isinstance(value, list | tuple) and all(isinstance(item, EnumerationItem) for item in value):
            return tuple(value)
    raise TypeError(
        f"Enumerator '{enumerator}' emitted {sorted(outputs)} but no sequence of EnumerationItem; "
        "fan-out needs one to multiply its dependents"
    )


def substitute_variant(
    params: Mapping[str, Any],
    variant: EnumerationItem,
    enumerator: str,
    *,
    node_name: str | None = None,
) -> dict[str, Any]:
    """Render <enumerator.key> placeholders with the variant's values.

    Placeholders naming another node are left untouched. Returns a new
    dict; params and variant are not modified.

    Raises:
        TemplateRenderError: If a placeholder names a key the variant lacks
    """
    missing = [
        f"{m.group(1)}.{m.group(2)}"
        for m in find_placeholders(params, VARIANT_PATTERN)
        if m.group(1) == enumerator and m.group(2) not in variant.params
    ]
    if missing:
        raise TemplateRenderError(missing, node_name=node_name)

    def lookup(match: re.Match[str]) -> Any:
        if match.group(1) != enumerator:
            return match.group(0)
        return variant.params[match.group(2)]

    rendered = substitute_placeholders(params, VARIANT_PATTERN, lookup)
    return dict(rendered)


class FanOutPlanner:
    """Runs the variants of one fanned-out node.

    With max_workers == 1 variants run sequentially in index order and
    cancellation is checked before each one. With more workers they run
    on a ThreadPoolExecutor; cancellation is checked before submission.
    Either way results come back as a list in index order, and the first
    failure in index order is re-raised.

    Example:
        planner = FanOutPlanner(max_workers=4)
        outputs = planner.run(items, lambda item: execute(node, item), check_cancelled)
    """

    def __init__(self, max_workers: int = 1) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._max_workers = max_workers

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def run(
        self,
        items: Sequence[EnumerationItem],
        run_variant: Callable[[EnumerationItem], T],
        check_cancelled: Callable[[], None] | None = None,
    ) -> list[T]:
        """Execute run_variant once per item and return results by index."""
        if self._max_workers == 1 or len(items) <= 1:
            results: list[T] = []
            for item in items:
                if check_cancelled is not None:
                    check_cancelled()
                results.append(run_variant(item))
            return results

        if check_cancelled is not None:
            check_cancelled()
        workers = min(self._max_workers, len(items))
        logger.debug("Running variants on thread pool", variants=len(items), workers=workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="augur-variant") as executor:
            # Workers see the caller's contextvars (run_id, alert_id)
            futures: list[Future[T]] = [executor.submit(contextvars.copy_context().run, run_variant, item) for item in items]
            # result() re-raises the worker's exception; iterate in index order
            return [future.result() for future in futures]

