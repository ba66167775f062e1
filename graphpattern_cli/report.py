"""Console and JSON rendering of detection results."""

from __future__ import annotations

import json
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import PATTERN_TYPE_ORDER, PatternDetectionResult, PatternSeverity

SEVERITY_STYLES = {
    PatternSeverity.INFO: "cyan",
    PatternSeverity.WARNING: "yellow",
    PatternSeverity.ERROR: "red",
    PatternSeverity.CRITICAL: "bold white on red",
}

_TYPE_LABELS = {
    "circular_dependency": "Circular dependencies",
    "orphaned_node": "Orphaned nodes",
    "hub_node": "Hub nodes",
    "dead_code": "Dead code",
}


def result_to_json(result: PatternDetectionResult, indent: int = 2) -> str:
    return json.dumps(result.to_dict(), indent=indent)


def _summary_table(result: PatternDetectionResult) -> Table:
    table = Table(title="Summary", show_header=True, header_style="bold")
    table.add_column("Pattern")
    table.add_column("Count", justify="right")
    for pattern_type in PATTERN_TYPE_ORDER:
        table.add_row(_TYPE_LABELS[pattern_type.value], str(result.summary[pattern_type.value]))
    table.add_row("[bold]Total[/bold]", f"[bold]{result.summary['total']}[/bold]")
    return table


def _severity_table(result: PatternDetectionResult) -> Table:
    table = Table(title="By severity", show_header=True, header_style="bold")
    table.add_column("Severity")
    table.add_column("Count", justify="right")
    for severity in PatternSeverity:
        style = SEVERITY_STYLES[severity]
        table.add_row(f"[{style}]{severity.value}[/{style}]", str(result.by_severity[severity.value]))
    return table


def render_result(
    result: PatternDetectionResult,
    console: Optional[Console] = None,
    details: bool = False,
) -> None:
    """Print summary tables and one row per detected pattern."""
    console = console or Console()

    if result.cancelled:
        console.print(Panel("Analysis was cancelled; results are partial.", style="yellow"))

    console.print(_summary_table(result))
    console.print(_severity_table(result))

    if not result.patterns:
        console.print("[green]No patterns detected.[/green]")
    else:
        table = Table(title="Detected patterns", show_lines=details)
        table.add_column("#", justify="right")
        table.add_column("Type")
        table.add_column("Severity")
        table.add_column("Description", overflow="fold")
        if details:
            table.add_column("Suggested actions", overflow="fold")

        for index, pattern in enumerate(result.patterns, start=1):
            style = SEVERITY_STYLES[pattern.severity]
            row = [
                str(index),
                pattern.type.value,
                f"[{style}]{pattern.severity.value}[/{style}]",
                pattern.description,
            ]
            if details:
                row.append("\n".join(
                    f"{r.priority}. [{r.action}] {r.description}" for r in pattern.remediations
                ) or "-")
            table.add_row(*row)
        console.print(table)

    dead_code_meta = result.metadata.get("dead_code", {})
    if dead_code_meta.get("roots_unavailable"):
        console.print("[yellow]Dead code analysis skipped: no root nodes available.[/yellow]")

    console.print(
        f"[dim]Analyzed at {result.analyzed_at.isoformat()} in {result.analysis_time_ms:.1f} ms[/dim]"
    )
