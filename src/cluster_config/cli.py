"""Typer CLI for cluster-config.

Commands:
  desired-tags  Show the effective tags a host resolves for every type
  effective     Show effective properties (optionally with provenance)
  stale         Decide whether a component's applied configuration is stale
"""

from __future__ import annotations

import json
import logging
from pathlib import Path  # noqa: TC003 - Typer evaluates type hints at runtime
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cluster_config.service import ConfigService
from cluster_config.settings import ClusterConfigSettings
from cluster_config.snapshot import SnapshotError, load_snapshot
from cluster_config.types import ComponentKey

app = typer.Typer(
    name="cluster-config",
    help="Resolve effective cluster configuration and detect stale components",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main() -> None:
    settings = _load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_settings() -> ClusterConfigSettings:
    try:
        return ClusterConfigSettings()
    except ValidationError as e:
        fields = ", ".join(
            "CLUSTER_CONFIG_" + str(err["loc"][0]).upper() for err in e.errors() if err["loc"]
        )
        console.print(f"[red]Invalid settings: {escape(fields)}[/red]")
        raise typer.Exit(1) from None


def _build_service(snapshot: Path) -> ConfigService:
    settings = _load_settings()
    try:
        state = load_snapshot(snapshot).build()
    except (OSError, SnapshotError) as e:
        console.print(f"[red]Error loading snapshot: {e}[/red]")
        raise typer.Exit(1) from None
    return ConfigService(
        state.cluster_state,
        state.stack_metadata,
        state.component_state,
        policy=settings.cache_policy(),
    )


@app.command("desired-tags")
def desired_tags(
    snapshot: Annotated[Path, typer.Argument(help="Cluster snapshot (YAML or JSON)")],
    cluster: Annotated[str, typer.Option("--cluster", "-c", help="Cluster id")],
    host: Annotated[str, typer.Option("--host", "-H", help="Host name")],
) -> None:
    """Show the effective tags resolved for a host."""
    service = _build_service(snapshot)
    try:
        tags = service.desired_tags(cluster, host)
    except LookupError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    table = Table(title=f"Desired tags for {host}")
    table.add_column("Type", style="cyan")
    table.add_column("Cluster tag", style="green")
    table.add_column("Group overrides")
    for config_type, tag_set in tags.items():
        overrides = ", ".join(f"{g}={t}" for g, t in tag_set.overrides())
        table.add_row(config_type, tag_set.cluster_tag or "-", overrides or "-")
    console.print(table)


@app.command()
def effective(
    snapshot: Annotated[Path, typer.Argument(help="Cluster snapshot (YAML or JSON)")],
    cluster: Annotated[str, typer.Option("--cluster", "-c", help="Cluster id")],
    host: Annotated[str, typer.Option("--host", "-H", help="Host name")],
    config_type: Annotated[
        str | None, typer.Option("--type", "-t", help="Only show this configuration type")
    ] = None,
    trace: Annotated[
        bool, typer.Option("--trace", help="Show which layer supplied each value")
    ] = False,
    format: Annotated[
        str, typer.Option("--format", "-f", help="Output format: text or json")
    ] = "text",
) -> None:
    """Show the effective properties of a host after group overrides."""
    service = _build_service(snapshot)
    try:
        explanations = service.explain_properties(cluster, host)
    except LookupError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    if config_type is not None:
        explanations = [e for e in explanations if e.config_type == config_type]

    if format == "json":
        if trace:
            payload = [e.model_dump() for e in explanations]
        else:
            payload = {e.config_type: e.effective() for e in explanations}
        console.print_json(json.dumps(payload))
        return

    for explanation in explanations:
        if trace:
            console.print(explanation.to_text(), markup=False)
            console.print()
            continue
        table = Table(title=explanation.config_type)
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        for key, value in sorted(explanation.effective().items()):
            table.add_row(key, value)
        console.print(table)


@app.command()
def stale(
    snapshot: Annotated[Path, typer.Argument(help="Cluster snapshot (YAML or JSON)")],
    cluster: Annotated[str, typer.Option("--cluster", "-c", help="Cluster id")],
    host: Annotated[str, typer.Option("--host", "-H", help="Host name")],
    service_name: Annotated[str, typer.Option("--service", "-s", help="Service name")],
    component: Annotated[str, typer.Option("--component", "-x", help="Component name")],
    format: Annotated[
        str, typer.Option("--format", "-f", help="Output format: text or json")
    ] = "text",
) -> None:
    """Decide whether a component's applied configuration is stale."""
    service = _build_service(snapshot)
    key = ComponentKey(cluster, host, service_name, component)
    try:
        report = service.explain_staleness(key)
    except LookupError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    if format == "json":
        console.print_json(report.to_json())
    else:
        console.print(report.to_text(), markup=False)
