"""Shared helpers for publishing use-case reports."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rich.console import Console

from kre.application.csv_export import export_csv
from kre.application.report import ReportTable
from kre.application.stdout_renderer import render_report


@dataclass(frozen=True)
class ReportResult:
    """Assembled report and the CSV file it was written to, if any."""

    report: ReportTable
    csv_path: Path | None = None


def publish_report(
    report: ReportTable,
    *,
    csv_prefix: str,
    csv_dir: str | Path | None = None,
    console: Console | None = None,
) -> ReportResult:
    """Write ``report`` to CSV when ``csv_dir`` is set, else print it."""
    console = console or Console()
    if csv_dir is None:
        render_report(report, console)
        return ReportResult(report=report)

    csv_path = export_csv(report, csv_prefix, output_dir=csv_dir)
    console.print(f"[green]CSV:[/green] {csv_path}")
    return ReportResult(report=report, csv_path=csv_path)
