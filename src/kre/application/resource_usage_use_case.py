"""Current allocation use-case: requests and limits against capacity."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from kre.application.report import build_resource_report, build_resource_rows
from kre.application.use_case_utils import ReportResult, publish_report
from kre.domain.ranking import RESOURCE_ROW_FIELDS, validate_field
from kre.domain.records import ClusterCapacity
from kre.infrastructure.cluster_inventory import ClusterInventory


def execute_resource_usage(
    inventory: ClusterInventory,
    *,
    namespace: str | None = "default",
    node: str | None = None,
    sort_field: str = "CpuReq",
    reverse: bool = False,
    csv_dir: str | Path | None = None,
    console: Console | None = None,
) -> ReportResult:
    """Report per-container requests/limits as a share of node capacity."""
    validate_field(RESOURCE_ROW_FIELDS, sort_field)

    capacity = ClusterCapacity.from_nodes(inventory.list_nodes())
    containers = inventory.list_active_containers(namespace, node)
    rows = build_resource_rows(containers, capacity)
    report = build_resource_report(
        rows, capacity, sort_field=sort_field, reverse=reverse
    )
    return publish_report(
        report, csv_prefix="resources", csv_dir=csv_dir, console=console
    )
