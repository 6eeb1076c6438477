"""Tests for terminal rendering."""

from __future__ import annotations

from rich.console import Console

from kre.application.report import ReportTable
from kre.application.stdout_renderer import build_table, render_report


def _report(body: list[list[str]]) -> ReportTable:
    return ReportTable(
        title="Historical Memory Usage",
        headers=("Pod/Container", "Max", "DataPoints"),
        body=body,
        totals=["Total", "", "1,200"],
        footer="Results shown are for a period of 4h0m0s.",
        notes=["1 container(s) omitted after backend errors."],
    )


def test_numeric_columns_right_aligned() -> None:
    table = build_table(_report([["web/app", "512Mi", "1,200"], ["db/pg", "-", "0"]]))
    assert [column.justify for column in table.columns] == ["left", "right", "right"]
    assert table.row_count == 3


def test_render_prints_footer_and_notes() -> None:
    console = Console(record=True, width=120)
    render_report(_report([["web/app", "512Mi", "1,200"]]), console)
    text = console.export_text()
    assert "web/app" in text
    assert "4h0m0s" in text
    assert "omitted" in text


def test_render_empty_report() -> None:
    console = Console(record=True, width=120)
    render_report(_report([]), console)
    assert "no containers found" in console.export_text()
