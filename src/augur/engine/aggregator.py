# src/augur/engine/aggregator.py
"""ResultAggregator: reduces terminal outputs to one pipeline result.

A run must end in exactly one output stream, a stream being one
(node, output key) pair. A fan-out terminal contributes one stream with
one value per variant.

    no stream                   -> NoTerminalOutputError
    zero-item fan-out terminal  -> DetectionPipelineResult.empty()
    one stream, one value       -> that value
    one stream, N variants      -> values combined in variant order
    several streams             -> MultipleRootOutputsError
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from augur.contracts import (
    DetectionPipelineResult,
    MultipleRootOutputsError,
    NoTerminalOutputError,
    ResultKind,
    RunMetadata,
)
from augur.core.logging import get_logger
from augur.engine.executor import TerminalOutput

logger = get_logger(__name__)


def as_pipeline_result(value: Any) -> DetectionPipelineResult:
    """Wrap a raw operator output; DetectionPipelineResult passes through."""
    if isinstance(value, DetectionPipelineResult):
        return value
    return DetectionPipelineResult.passthrough(value)


def _payload(result: DetectionPipelineResult) -> Any:
    if result.kind == ResultKind.PASSTHROUGH:
        return result.payload
    if result.kind == ResultKind.EMPTY:
        return None
    return result


class ResultAggregator:
    """Builds the single DetectionPipelineResult of a run."""

    def aggregate(
        self,
        outputs: Sequence[TerminalOutput],
        *,
        empty_terminals: Sequence[str] = (),
        metadata: RunMetadata | None = None,
    ) -> DetectionPipelineResult:
        """Reduce terminal outputs to one result.

        Args:
            outputs: Terminal outputs in declaration and variant order
            empty_terminals: Fan-out terminals whose enumerator produced
                zero items
            metadata: Run identity to attach to the result

        Raises:
            MultipleRootOutputsError: If more than one stream exists
            NoTerminalOutputError: If there is nothing to return
        """
        streams: dict[tuple[str, str], list[TerminalOutput]] = {}
        for out in outputs:
            streams.setdefault((out.node, out.key), []).append(out)

        names = [f"{node}.{key}" for node, key in streams] + [f"{node}.*" for node in empty_terminals]
        if len(names) > 1:
            raise MultipleRootOutputsError(names)

        if not streams:
            if not empty_terminals:
                raise NoTerminalOutputError("Run produced no terminal output")
            logger.info("Terminal fan-out produced no variants", node=empty_terminals[0])
            return self._with_metadata(DetectionPipelineResult.empty(), metadata)

        (values,) = streams.values()
        ordered = sorted(values, key=lambda out: -1 if out.variant_index is None else out.variant_index)
        if len(ordered) == 1 and ordered[0].variant_index is None:
            result = as_pipeline_result(ordered[0].value)
        else:
            result = self._combine([as_pipeline_result(out.value) for out in ordered])
        logger.debug("Aggregated terminal output", stream=names[0], values=len(ordered), kind=str(result.kind))
        return self._with_metadata(result, metadata)

    def _combine(self, results: list[DetectionPipelineResult]) -> DetectionPipelineResult:
        """Combine per-variant results in index order."""
        if all(result.kind == ResultKind.DETECTION for result in results):
            return DetectionPipelineResult.detection(*(d for result in results for d in result.detection_results))
        return DetectionPipelineResult.passthrough(tuple(_payload(result) for result in results))

    @staticmethod
    def _with_metadata(result: DetectionPipelineResult, metadata: RunMetadata | None) -> DetectionPipelineResult:
        if metadata is None:
            return result
        return replace(result, metadata=metadata)
