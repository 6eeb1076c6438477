"""Historical use-case: summarize container CPU or memory over a window."""

from __future__ import annotations

import logging
from contextlib import ExitStack
from datetime import timedelta
from pathlib import Path

from rich.console import Console

from kre.application.metrics_pipeline import (
    BackendConfigurationError,
    MetricsPipeline,
    PipelineConfig,
    TimeSeriesBackend,
    build_jobs,
)
from kre.application.report import build_metrics_report
from kre.application.use_case_utils import ReportResult, publish_report
from kre.config import ExplorerConfig
from kre.domain.ranking import METRICS_SUMMARY_FIELDS, validate_field
from kre.domain.records import MetricKind
from kre.infrastructure.cluster_inventory import ClusterInventory, KubectlInventory
from kre.infrastructure.prometheus_client import (
    PrometheusClient,
    PrometheusClientConfig,
)

logger = logging.getLogger(__name__)


def build_backend(config: ExplorerConfig) -> PrometheusClient:
    """Create the time-series client, failing fast on missing settings."""
    if not config.has_prometheus:
        raise BackendConfigurationError(
            "PROMETHEUS_URL is required for historical data "
            "(set it in the environment, .env or --prometheus-url)"
        )
    settings = config.prometheus
    return PrometheusClient(
        settings.url or "",
        token=settings.token,
        config=PrometheusClientConfig(
            timeout_seconds=settings.timeout_seconds,
            max_retries=settings.max_retries,
        ),
    )


def execute_historical(
    config: ExplorerConfig,
    *,
    kind: MetricKind,
    window: timedelta,
    namespace: str | None = "default",
    node: str | None = None,
    sort_field: str = "Max",
    reverse: bool = False,
    csv_dir: str | Path | None = None,
    inventory: ClusterInventory | None = None,
    backend: TimeSeriesBackend | None = None,
    console: Console | None = None,
) -> ReportResult:
    """Collect and report per-container metric summaries for ``window``."""
    validate_field(METRICS_SUMMARY_FIELDS, sort_field)
    pipeline_config = PipelineConfig(workers=config.workers)

    with ExitStack() as stack:
        if backend is None:
            backend = stack.enter_context(build_backend(config))
        inventory = inventory or KubectlInventory(config.kubeconfig)

        containers = inventory.list_active_containers(namespace, node)
        jobs = build_jobs(containers, window, kind)
        logger.info(
            "collecting %s metrics for %d containers with %d workers",
            kind.value,
            len(jobs),
            pipeline_config.workers,
        )
        result = MetricsPipeline(backend, pipeline_config).run(jobs)

    report = build_metrics_report(
        result.summaries,
        kind,
        window,
        sort_field=sort_field,
        reverse=reverse,
        dropped=len(result.dropped),
    )
    prefix = f"historical-{kind.value}"
    return publish_report(report, csv_prefix=prefix, csv_dir=csv_dir, console=console)
