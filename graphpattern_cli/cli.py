"""Typer-based CLI for graph pattern detection."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__, config_manager
from .adapters import GraphStoreAdapter, InMemoryGraphAdapter
from .exceptions import AdapterError, ConfigurationError, GraphPatternError
from .graph_export import export_dot
from .graph_io import dump_graph_document, load_graph_file
from .models import PatternDetectionConfig, PatternSeverity
from .report import render_result, result_to_json
from .service import detect_patterns
from .storage import GraphStore, ProjectManager, row_to_edge, row_to_node

console = Console()

app = typer.Typer(
    help="🔍 GraphPattern CLI — detect cycles, orphans, hubs and dead code in any directed graph.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    help="⚙️  Configuration — default detection settings.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(config_app, name="config")

EXIT_FINDINGS = 1
EXIT_ERROR = 2


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"GraphPattern CLI v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """GraphPattern CLI: structural anti-pattern detection with suggested remediations."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _fail(exc: GraphPatternError) -> None:
    typer.echo(f"❌ {exc}", err=True)
    raise typer.Exit(code=EXIT_ERROR)


def _open_current_store(pm: ProjectManager) -> GraphStore:
    project = pm.get_current_project()
    if not project:
        raise typer.BadParameter("No project loaded. Use 'gp load-project <name>' or run 'gp import-graph <file>'.")
    project_dir = pm.project_dir(project)
    if not project_dir.exists():
        raise typer.BadParameter(f"Loaded project '{project}' does not exist in memory.")
    return GraphStore(project_dir)


# ------------------------------------------------------------------
# Detection
# ------------------------------------------------------------------

@app.command("detect")
def detect(
    graph_file: Optional[Path] = typer.Argument(
        None, exists=True, dir_okay=False, help="JSON/YAML graph file. Defaults to the current project.",
    ),
    threshold: Optional[int] = typer.Option(None, "--threshold", "-t", help="Hub node connection threshold."),
    min_severity: Optional[str] = typer.Option(None, "--min-severity", "-s", help="info, warning, error or critical."),
    patterns: Optional[List[str]] = typer.Option(None, "--pattern", "-p", help="Pattern type to enable (repeatable)."),
    exclude_node_types: Optional[List[str]] = typer.Option(None, "--exclude-node-type", help="Node type to ignore (repeatable)."),
    exclude_edge_types: Optional[List[str]] = typer.Option(None, "--exclude-edge-type", help="Edge type to ignore (repeatable)."),
    roots: Optional[List[str]] = typer.Option(None, "--root", "-r", help="Entry point node id for dead code analysis (repeatable)."),
    partial: Optional[bool] = typer.Option(None, "--partial/--no-partial", help="Also flag source-only and sink-only nodes."),
    remediations: Optional[bool] = typer.Option(None, "--remediations/--no-remediations", help="Attach suggested remediations."),
    concurrent: Optional[bool] = typer.Option(None, "--concurrent/--sequential", help="Run detectors in parallel threads."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
    details: bool = typer.Option(False, "--details", "-d", help="Show remediation suggestions."),
    fail_on: Optional[str] = typer.Option(None, "--fail-on", help="Exit 1 if a pattern at or above this severity is found."),
    dot_output: Optional[Path] = typer.Option(None, "--dot", help="Also write a DOT graph with patterns highlighted."),
):
    """Detect circular dependencies, orphaned nodes, hub nodes and dead code."""
    overrides: Dict[str, Any] = {
        "hub_node_threshold": threshold,
        "min_severity": min_severity,
        "enabled_patterns": list(patterns) if patterns else None,
        "excluded_node_types": list(exclude_node_types) if exclude_node_types else None,
        "excluded_edge_types": list(exclude_edge_types) if exclude_edge_types else None,
        "root_node_ids": list(roots) if roots else None,
        "detect_partially_isolated_nodes": partial,
        "include_remediations": remediations,
        "concurrent": concurrent,
    }

    try:
        detection_config = config_manager.load_detection_config(overrides)
        fail_level = PatternSeverity(fail_on) if fail_on else None
    except ConfigurationError as exc:
        _fail(exc)
        return
    except ValueError:
        raise typer.BadParameter(f"Unknown severity for --fail-on: {fail_on}")

    store: Optional[GraphStore] = None
    try:
        if graph_file is not None:
            nodes, edges = load_graph_file(graph_file)
            adapter = InMemoryGraphAdapter(nodes, edges)
        else:
            store = _open_current_store(ProjectManager())
            adapter = GraphStoreAdapter(store)
        result = detect_patterns(adapter, detection_config)
        if dot_output is not None:
            all_nodes = list(nodes) if graph_file is not None else [row_to_node(r) for r in store.get_nodes()]
            all_edges = list(edges) if graph_file is not None else [row_to_edge(r) for r in store.get_edges()]
            export_dot(all_nodes, all_edges, dot_output, result)
    except (AdapterError, ConfigurationError) as exc:
        _fail(exc)
        return
    finally:
        if store is not None:
            store.close()

    if as_json:
        typer.echo(result_to_json(result))
    else:
        render_result(result, console=console, details=details)
        if dot_output is not None:
            typer.echo(f"Wrote DOT graph to {dot_output}")

    if fail_level is not None and any(p.severity >= fail_level for p in result.patterns):
        raise typer.Exit(code=EXIT_FINDINGS)


# ------------------------------------------------------------------
# Project memories
# ------------------------------------------------------------------

@app.command("import-graph")
def import_graph(
    graph_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON/YAML graph file."),
    project_name: Optional[str] = typer.Option(None, "--name", "-n", help="Explicit memory name for the graph."),
):
    """Load a graph file into a named project memory and make it current."""
    try:
        nodes, edges = load_graph_file(graph_file)
    except AdapterError as exc:
        _fail(exc)
        return

    pm = ProjectManager()
    name = project_name or graph_file.stem.replace(" ", "_")
    store = GraphStore(pm.create_or_get_project(name))
    try:
        store.clear()
        store.insert_nodes(nodes)
        store.insert_edges(edges)
        store.set_metadata({
            **store.get_metadata(),
            "project_name": name,
            "source_path": str(graph_file.resolve()),
            "imported_at": datetime.now().isoformat(),
        })
    except (sqlite3.Error, TypeError, ValueError) as exc:
        _fail(AdapterError("Cannot store graph", context={"project": name}, cause=exc))
        return
    finally:
        store.close()
    pm.set_current_project(name)

    typer.echo(f"Imported '{graph_file}' as project '{name}'.")
    typer.echo(f"Nodes: {len(nodes)} | Edges: {len(edges)}")


@app.command("export-graph")
def export_graph(
    output: Path = typer.Argument(..., help="Output file path."),
    fmt: str = typer.Option("json", "--format", "-f", help="Export format: json or dot."),
):
    """Export the current project graph to JSON or Graphviz DOT."""
    fmt = fmt.lower()
    if fmt not in {"json", "dot"}:
        raise typer.BadParameter("Format must be one of: json, dot")

    store = _open_current_store(ProjectManager())
    try:
        nodes = [row_to_node(r) for r in store.get_nodes()]
        edges = [row_to_edge(r) for r in store.get_edges()]
    finally:
        store.close()

    if fmt == "json":
        output.write_text(json.dumps(dump_graph_document(nodes, edges), indent=2), encoding="utf-8")
    else:
        export_dot(nodes, edges, output)
    typer.echo(f"Exported graph to {output}")


@app.command("list-projects")
def list_projects():
    """List all persisted project memories."""
    pm = ProjectManager()
    projects = pm.list_projects()
    current = pm.get_current_project()

    if not projects:
        typer.echo("No projects imported yet.")
        raise typer.Exit(code=0)

    for p in projects:
        marker = "*" if p == current else " "
        typer.echo(f"{marker} {p}")


@app.command("load-project")
def load_project(project_name: str = typer.Argument(..., help="Name of project memory to load.")):
    """Switch active project memory."""
    pm = ProjectManager()
    if project_name not in pm.list_projects():
        raise typer.BadParameter(f"Project '{project_name}' not found.")
    pm.set_current_project(project_name)
    typer.echo(f"Loaded project '{project_name}'.")


@app.command("current-project")
def current_project():
    """Print active project memory name."""
    pm = ProjectManager()
    current = pm.get_current_project()
    typer.echo(current or "No project loaded")


@app.command("delete-project")
def delete_project(project_name: str = typer.Argument(..., help="Project memory to delete.")):
    """Delete persisted project memory."""
    pm = ProjectManager()
    deleted = pm.delete_project(project_name)
    if not deleted:
        raise typer.BadParameter(f"Project '{project_name}' not found.")
    if pm.get_current_project() == project_name:
        pm.unload_project()
    typer.echo(f"Deleted project '{project_name}'.")


# ------------------------------------------------------------------
# Config
# ------------------------------------------------------------------

@config_app.command("show")
def show_config():
    """Show the effective detection settings."""
    try:
        current = config_manager.load_detection_config()
    except ConfigurationError as exc:
        _fail(exc)
        return

    table = Table(title="Detection settings", show_header=True, header_style="bold")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in current.to_dict().items():
        if isinstance(value, list):
            value = ", ".join(value) or "-"
        table.add_row(key, str(value))
    console.print(table)
    console.print(f"[dim]File: {config_manager.CONFIG_FILE}[/dim]")


@config_app.command("set-threshold")
def set_threshold(threshold: int = typer.Argument(..., help="Hub node connection threshold.")):
    """Persist a new default hub node threshold."""
    try:
        settings = config_manager.load_detection_settings()
        settings["hub_node_threshold"] = threshold
        config_manager.save_detection_config(PatternDetectionConfig.from_dict(settings))
    except ConfigurationError as exc:
        _fail(exc)
        return
    typer.echo(f"Hub node threshold set to {threshold}.")


@config_app.command("reset")
def reset_config():
    """Remove saved detection settings."""
    try:
        config_manager.clear_detection_config()
    except ConfigurationError as exc:
        _fail(exc)
        return
    typer.echo("Detection settings reset to defaults.")


if __name__ == "__main__":
    app()
