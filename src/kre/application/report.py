"""Assemble ranked records into plain string tables."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import timedelta

from kre.domain.duration import format_duration
from kre.domain.quantity import Quantity, new_cpu, new_memory
from kre.domain.ranking import METRICS_SUMMARY_FIELDS, RESOURCE_ROW_FIELDS, rank
from kre.domain.records import (
    ClusterCapacity,
    ContainerMetricsSummary,
    ContainerResourceRow,
    ContainerSpec,
    MetricKind,
)

RESOURCE_HEADERS = (
    "Namespace",
    "Name",
    "CpuReq",
    "CpuReq%",
    "CpuLimit",
    "CpuLimit%",
    "MemReq",
    "MemReq%",
    "MemLimit",
    "MemLimit%",
)

NO_DATA = "-"


@dataclass(frozen=True)
class ReportTable:
    """Headers, ranked body rows and a trailing totals row."""

    title: str
    headers: tuple[str, ...]
    body: list[list[str]]
    totals: list[str]
    footer: str | None = None
    notes: list[str] = field(default_factory=list)

    def as_rows(self) -> list[list[str]]:
        """Return headers, body and totals as one list of rows."""
        return [list(self.headers), *self.body, self.totals]


def fmt_percent(value: int) -> str:
    """Render an integer percentage."""
    return f"{value}%"


def build_resource_rows(
    containers: Iterable[ContainerSpec],
    capacity: ClusterCapacity,
) -> list[ContainerResourceRow]:
    """Build one row per container against its node's capacity."""
    rows: list[ContainerResourceRow] = []
    for spec in containers:
        cpu_capacity, memory_capacity = capacity.for_node(spec.node_name)
        rows.append(ContainerResourceRow.from_spec(spec, cpu_capacity, memory_capacity))
    return rows


def _ratio(total: Quantity, capacity: Quantity) -> str:
    return f"{total}/{capacity}"


def build_resource_report(
    rows: Iterable[ContainerResourceRow],
    capacity: ClusterCapacity,
    *,
    sort_field: str = "CpuReq",
    reverse: bool = False,
) -> ReportTable:
    """Rank allocation rows and append totals against cluster capacity."""
    ranked = rank(rows, sort_field, RESOURCE_ROW_FIELDS, reverse=reverse)

    total_cpu_req, total_cpu_limit = new_cpu(0), new_cpu(0)
    total_mem_req, total_mem_limit = new_memory(0), new_memory(0)
    body: list[list[str]] = []
    for row in ranked:
        total_cpu_req.add(row.cpu_request)
        total_cpu_limit.add(row.cpu_limit)
        total_mem_req.add(row.memory_request)
        total_mem_limit.add(row.memory_limit)
        body.append(
            [
                row.namespace,
                row.name,
                str(row.cpu_request),
                fmt_percent(row.percent_cpu_request),
                str(row.cpu_limit),
                fmt_percent(row.percent_cpu_limit),
                str(row.memory_request),
                fmt_percent(row.percent_memory_request),
                str(row.memory_limit),
                fmt_percent(row.percent_memory_limit),
            ]
        )

    cpu, memory = capacity.cpu, capacity.memory
    totals = [
        "Total",
        "",
        _ratio(total_cpu_req, cpu),
        fmt_percent(total_cpu_req.percent_of(cpu)),
        _ratio(total_cpu_limit, cpu),
        fmt_percent(total_cpu_limit.percent_of(cpu)),
        _ratio(total_mem_req, memory),
        fmt_percent(total_mem_req.percent_of(memory)),
        _ratio(total_mem_limit, memory),
        fmt_percent(total_mem_limit.percent_of(memory)),
    ]
    notes = []
    if cpu.value == 0 or memory.value == 0:
        notes.append("Cluster capacity is zero for some resources; shown as 0%.")
    return ReportTable(
        title="Resource Allocation",
        headers=RESOURCE_HEADERS,
        body=body,
        totals=totals,
        notes=notes,
    )


def _cell(value: Quantity | None) -> str:
    return NO_DATA if value is None else str(value)


def metrics_headers(kind: MetricKind) -> tuple[str, ...]:
    """Return the historical table headers for ``kind``."""
    central = "Avg" if kind is MetricKind.CPU else "Mode"
    return ("Pod/Container", "Last", "Min", "Max", central, "DataPoints")


def build_metrics_report(
    summaries: Iterable[ContainerMetricsSummary],
    kind: MetricKind,
    window: timedelta,
    *,
    sort_field: str = "Max",
    reverse: bool = False,
    dropped: int = 0,
) -> ReportTable:
    """Rank metric summaries and append the data point total."""
    ranked = rank(summaries, sort_field, METRICS_SUMMARY_FIELDS, reverse=reverse)

    total_points = 0
    body: list[list[str]] = []
    for summary in ranked:
        total_points += summary.data_points
        body.append(
            [
                summary.name,
                _cell(summary.last),
                _cell(summary.min),
                _cell(summary.max),
                _cell(summary.central()),
                f"{summary.data_points:,}",
            ]
        )

    notes = []
    if dropped:
        notes.append(f"{dropped} container(s) omitted after backend errors.")
    return ReportTable(
        title=f"Historical {kind.label} Usage",
        headers=metrics_headers(kind),
        body=body,
        totals=["Total", "", "", "", "", f"{total_points:,}"],
        footer=(
            f"Results shown are for a period of {format_duration(window)}. "
            f"{total_points:,} data points were evaluated."
        ),
        notes=notes,
    )
