"""Render report tables to the terminal using rich."""

import re
from collections.abc import Iterable

from rich import box
from rich.console import Console
from rich.table import Table

from kre.application.report import NO_DATA, ReportTable

_NUMERIC_CELL = re.compile(r"^-?[\d,]+(?:\.\d+)?(?:m|Mi|%)?(?:/-?[\d,]+(?:m|Mi))?$")


def _normalize(value: str) -> str:
    return value.strip()


def _is_numeric_column(values: Iterable[str]) -> bool:
    seen = False
    for raw in values:
        v = _normalize(raw)
        if not v or v == NO_DATA:
            continue
        seen = True
        if not _NUMERIC_CELL.match(v):
            return False
    return seen


def _columns_from_rows(
    headers: tuple[str, ...], rows: list[list[str]]
) -> list[list[str]]:
    return [
        [row[col_idx] if col_idx < len(row) else "" for row in rows]
        for col_idx in range(len(headers))
    ]


def build_table(report: ReportTable) -> Table:
    """Build a rich table with the totals row in its own section."""
    table = Table(
        title=report.title,
        show_lines=False,
        expand=False,
        box=box.SIMPLE_HEAVY,
    )
    columns = _columns_from_rows(report.headers, report.body)
    for col_idx, header in enumerate(report.headers):
        justify = "right" if _is_numeric_column(columns[col_idx]) else "left"
        table.add_column(header, overflow="fold", no_wrap=False, justify=justify)

    for index, row in enumerate(report.body):
        normalized = row + [""] * (len(report.headers) - len(row))
        table.add_row(*normalized, end_section=index == len(report.body) - 1)
    table.add_row(*report.totals, style="bold")
    return table


def render_report(report: ReportTable, console: Console | None = None) -> None:
    """Print ``report`` with its footer and notes."""
    console = console or Console()
    if not report.body:
        console.print(f"[yellow]{report.title}: no containers found.[/yellow]")
    console.print(build_table(report))
    if report.footer:
        console.print(report.footer)
    for note in report.notes:
        console.print(f"[dim]{note}[/dim]")
