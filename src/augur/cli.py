# src/augur/cli.py
"""Augur Command Line Interface.

Entry point for the augur CLI tool.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Literal

import typer
from pydantic import ValidationError

from augur import __version__
from augur.contracts import AugurError, DetectionPipelineResult, ResultKind
from augur.core.config import AugurSettings, load_alert, load_plan_nodes, load_settings
from augur.core.logging import configure_logging_from_settings
from augur.engine.legacy import LegacyPipelineResult
from augur.plugins.manager import OperatorRegistry

__all__ = ["app"]

app = typer.Typer(
    name="augur",
    help="Augur: anomaly detection plans over time-series data.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"augur version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Augur: anomaly detection plans over time-series data."""


def _load_settings_or_exit(settings: str | None) -> AugurSettings:
    try:
        return load_settings(Path(settings).expanduser() if settings else None)
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None


def _build_registry(settings: AugurSettings) -> OperatorRegistry:
    registry = OperatorRegistry()
    registry.register_builtin_operators()
    if settings.engine.load_entrypoint_plugins:
        registry.load_entrypoint_plugins()
    return registry


def _anomaly_to_dict(anomaly: Any) -> dict[str, Any]:
    data = {f.name: getattr(anomaly, f.name) for f in fields(anomaly)}
    data["dimensions"] = dict(anomaly.dimensions)
    return data


def _result_to_dict(result: DetectionPipelineResult | LegacyPipelineResult) -> dict[str, Any]:
    """JSON-friendly view of a run result (time series are omitted)."""
    if isinstance(result, LegacyPipelineResult):
        return {
            "path": "legacy",
            "anomalies": [_anomaly_to_dict(a) for a in result.anomalies],
            "last_timestamp": result.last_timestamp,
            "diagnostics": dict(result.diagnostics),
        }
    data: dict[str, Any] = {"path": "plan", "kind": str(result.kind)}
    if result.kind == ResultKind.DETECTION:
        data["anomalies"] = [_anomaly_to_dict(a) for a in result.anomalies]
    elif result.kind == ResultKind.PASSTHROUGH:
        data["payload"] = result.payload
    if result.metadata is not None:
        data["metadata"] = {
            "run_id": result.metadata.run_id,
            "alert_id": result.metadata.alert_id,
            "alert_name": result.metadata.alert_name,
            "start": result.metadata.interval.start,
            "end": result.metadata.interval.end,
        }
    return data


@app.command()
def run(
    alert_file: Path = typer.Argument(..., help="Alert YAML file (plan or legacy shape)."),
    start: int = typer.Option(..., "--start", help="Window start, epoch milliseconds (inclusive)."),
    end: int = typer.Option(..., "--end", help="Window end, epoch milliseconds (exclusive)."),
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
    ),
) -> None:
    """Run one alert over [start, end) and print its result."""
    from augur.engine.runner import DetectionPipelineRunner
    from augur.plugins.data import InMemoryDataFetcher

    config = _load_settings_or_exit(settings)
    configure_logging_from_settings(config.logging)

    try:
        alert = load_alert(alert_file)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error loading alert: {e}", err=True)
        raise typer.Exit(1) from None

    fetcher = None
    if config.data.csv_sources:
        fetcher = InMemoryDataFetcher.from_csv(config.data.csv_sources, timestamp_column=config.data.timestamp_column)

    runner = DetectionPipelineRunner.from_settings(config, data_fetcher=fetcher, registry=_build_registry(config))
    try:
        result = runner.run(alert, start, end)
    except (AugurError, ValueError, RuntimeError) as e:
        if output_format == "json":
            typer.echo(json.dumps({"error": str(e), "error_type": type(e).__name__}))
        else:
            typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    data = _result_to_dict(result)
    if output_format == "json":
        typer.echo(json.dumps(data, default=str))
        return
    typer.echo(f"Alert '{alert.name}' ({data['path']} path)")
    if "kind" in data:
        typer.echo(f"  Result: {data['kind']}")
    if "anomalies" in data:
        typer.echo(f"  Anomalies: {len(data['anomalies'])}")
        for anomaly in data["anomalies"]:
            typer.echo(f"    [{anomaly['start_time']}, {anomaly['end_time']}) current={anomaly['current']} baseline={anomaly['baseline']}")
    if "payload" in data:
        typer.echo(f"  Payload: {data['payload']!r}")


@app.command()
def validate(
    plan_file: Path = typer.Argument(..., help="Plan YAML file: node list, {nodes: [...]}, or alert file."),
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Validate a plan without executing any node."""
    from augur.engine.executor import PlanExecutor

    config = _load_settings_or_exit(settings)
    try:
        nodes = load_plan_nodes(plan_file)
        graph = PlanExecutor(_build_registry(config)).build_graph(nodes)
    except (FileNotFoundError, ValidationError, ValueError, AugurError) as e:
        typer.echo(f"Plan error: {e}", err=True)
        raise typer.Exit(1) from None

    typer.echo(f"Plan valid: {graph.node_count} nodes, {graph.edge_count} edges")
    if graph.node_count:
        typer.echo(f"  Execution order: {' -> '.join(graph.execution_order())}")
        typer.echo(f"  Terminal: {', '.join(graph.terminal_nodes())}")


plugins_app = typer.Typer(help="Operator plugin commands.")
app.add_typer(plugins_app, name="plugins")


@dataclass(frozen=True)
class OperatorInfo:
    """Metadata for a registered operator.

    Attributes:
        type_tag: Tag used in plan node 'type' fields.
        description: First line of the operator's docstring.
    """

    type_tag: str
    description: str


def _operator_infos(registry: OperatorRegistry) -> list[OperatorInfo]:
    infos = []
    for tag in registry.type_tags():
        cls = registry.get_operator_class(tag)
        doc = (cls.__doc__ or "").strip().splitlines() if cls is not None else []
        infos.append(OperatorInfo(type_tag=tag, description=doc[0] if doc else "No description available."))
    return infos


@plugins_app.command("list")
def plugins_list(
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """List available operator types."""
    registry = _build_registry(_load_settings_or_exit(settings))
    typer.echo("\nOPERATORS:")
    for info in _operator_infos(registry):
        typer.echo(f"  {info.type_tag:28} - {info.description}")
    typer.echo("")


if __name__ == "__main__":
    app()
