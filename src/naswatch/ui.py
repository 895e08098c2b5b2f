"""Console rendering for verdicts and the audit catalog."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from naswatch.checks.types import Level
from naswatch.drift.types import DriftPair
from naswatch.logsink import LEVEL_STYLES
from naswatch.stages.base import StageReport

console = Console()
err_console = Console(stderr=True)


def level_text(level: Level) -> Text:
    return Text(level.name, style=LEVEL_STYLES[level])


def render_verdict(report: StageReport, *, target: Console | None = None) -> None:
    out = target or console
    verdict = report.verdict
    table = Table(title=f"{report.stage} verdict", show_lines=False)
    table.add_column("Check", no_wrap=True)
    table.add_column("Level")
    table.add_column("Message", overflow="fold")
    for result in verdict.results:
        table.add_row(result.name, level_text(result.level), result.message)
    out.print(table)
    out.print(
        Text.assemble(
            ("Overall: ", "bold"),
            level_text(verdict.overall_level),
            f"  failures={verdict.failure_count}  policy={verdict.exit_policy.value}  exit={verdict.exit_code}",
        )
    )


def render_catalog(catalog: Sequence[DriftPair], *, target: Console | None = None) -> None:
    out = target or console
    table = Table(title=f"Audit catalog ({len(catalog)} entries)")
    table.add_column("Label", no_wrap=True)
    table.add_column("Category")
    table.add_column("Live source", overflow="fold")
    table.add_column("Staged reference", overflow="fold")
    for pair in catalog:
        table.add_row(pair.label, pair.category.value, str(pair.source_path), str(pair.reference_path))
    out.print(table)


def error(message: str, *, hint: str | None = None) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {message}")
    if hint:
        err_console.print(f"[yellow]{hint}[/yellow]")
