"""Tests for the metrics collection worker pool."""

from __future__ import annotations

import threading
from typing import Any
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from kre.application.metrics_pipeline import (
    CollectionResult,
    MetricsPipeline,
    PipelineConfig,
    build_jobs,
)
from kre.domain.quantity import new_cpu, new_memory
from kre.domain.records import ContainerSpec, MetricJob, MetricKind
from kre.domain.stats import NonIncreasingTimestampError, Sample
from kre.infrastructure.prometheus_client import PrometheusClient

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class FakeBackend:
    """In-memory backend keyed by pod name."""

    def __init__(
        self,
        samples: dict[str, list[Sample]] | None = None,
        failing: set[str] | None = None,
        error: type[Exception] = RuntimeError,
    ) -> None:
        self.samples = samples or {}
        self.failing = failing or set()
        self.error = error
        self.calls: list[tuple[str, datetime, datetime]] = []
        self._lock = threading.Lock()

    def selector_for(self, job: MetricJob) -> str:
        return job.pod_name

    def query_range(self, selector: str, start: datetime, end: datetime) -> list[Sample]:
        with self._lock:
            self.calls.append((selector, start, end))
        if selector in self.failing:
            raise self.error(f"backend unavailable for {selector}")
        return self.samples.get(selector, [Sample(0, 0.0), Sample(60, 6.0)])


def _job(pod: str, kind: MetricKind = MetricKind.CPU) -> MetricJob:
    return MetricJob(
        namespace="default",
        container_name="app",
        pod_name=pod,
        pod_uid=f"uid-{pod}",
        node_name="node-a",
        window=timedelta(hours=1),
        metric_kind=kind,
    )


def _run(backend: FakeBackend, jobs: list[MetricJob], workers: int) -> CollectionResult:
    config = PipelineConfig(workers=workers, clock=lambda: NOW)
    return MetricsPipeline(backend, config).run(jobs)


@pytest.mark.parametrize("workers", [1, 3, 8])
def test_every_job_yields_one_summary(workers: int) -> None:
    jobs = [_job(f"pod-{index}") for index in range(25)]
    result = _run(FakeBackend(), jobs, workers)

    assert result.submitted == 25
    assert result.accounted
    assert result.dropped == []
    assert sorted(s.pod_name for s in result.summaries) == sorted(
        job.pod_name for job in jobs
    )
    assert all(s.max == new_cpu(100) for s in result.summaries)


def test_no_jobs() -> None:
    result = _run(FakeBackend(), [], 4)
    assert result.summaries == []
    assert result.submitted == 0


def test_query_window_ends_at_collection_start() -> None:
    backend = FakeBackend()
    _run(backend, [_job("a"), _job("b")], 2)
    assert {(start, end) for _, start, end in backend.calls} == {
        (NOW - timedelta(hours=1), NOW)
    }


def test_backend_failures_are_dropped_and_logged(
    caplog: pytest.LogCaptureFixture,
) -> None:
    backend = FakeBackend(failing={"pod-1", "pod-3"})
    jobs = [_job(f"pod-{index}") for index in range(5)]
    result = _run(backend, jobs, 2)

    assert len(result.summaries) == 3
    assert sorted(job.pod_name for job in result.dropped) == ["pod-1", "pod-3"]
    assert result.accounted
    assert result.total_data_points == 6
    dropped_logs = [r for r in caplog.records if "dropping" in r.getMessage()]
    assert len(dropped_logs) == 2


def test_empty_series_becomes_no_data_summary() -> None:
    backend = FakeBackend(samples={"quiet": []})
    result = _run(backend, [_job("quiet", MetricKind.MEMORY)], 1)

    (summary,) = result.summaries
    assert not summary.has_data
    assert summary.data_points == 0
    assert result.dropped == []


def test_memory_jobs_summarized() -> None:
    samples = [Sample(0, 10.0), Sample(1, 20.0), Sample(2, 20.0)]
    backend = FakeBackend(samples={"mem": samples})
    result = _run(backend, [_job("mem", MetricKind.MEMORY)], 2)
    assert result.summaries[0].mode == new_memory(20)


def test_fatal_errors_are_raised_after_drain() -> None:
    bad = [Sample(0, 0.0), Sample(0, 1.0)]
    backend = FakeBackend(samples={"bad": bad})
    jobs = [_job("ok-1"), _job("bad"), _job("ok-2")]
    with pytest.raises(NonIncreasingTimestampError):
        _run(backend, jobs, 2)
    assert len(backend.calls) == 3


def test_workers_must_be_positive() -> None:
    with pytest.raises(ValueError, match="workers"):
        PipelineConfig(workers=0)


def test_build_jobs_one_per_container() -> None:
    containers = [
        ContainerSpec(
            namespace="ns",
            pod_name=f"p{index}",
            pod_uid=f"u{index}",
            container_name="c",
            node_name=None,
            cpu_request=new_cpu(0),
            cpu_limit=new_cpu(0),
            memory_request=new_memory(0),
            memory_limit=new_memory(0),
        )
        for index in range(3)
    ]
    jobs = build_jobs(containers, timedelta(minutes=5), MetricKind.MEMORY)
    assert [job.pod_name for job in jobs] == ["p0", "p1", "p2"]
    assert all(job.node_name == "" for job in jobs)
    assert all(job.metric_kind is MetricKind.MEMORY for job in jobs)


def test_non_runtime_backend_errors_are_dropped() -> None:
    backend = FakeBackend(failing={"slow"}, error=TimeoutError)
    result = _run(backend, [_job("slow"), _job("fast")], 2)

    assert [s.pod_name for s in result.summaries] == ["fast"]
    assert [job.pod_name for job in result.dropped] == ["slow"]
    assert result.accounted


def _prometheus_payload(result: Any) -> dict[str, Any]:
    return {"status": "success", "data": {"resultType": "matrix", "result": result}}


def test_malformed_prometheus_payloads_are_dropped() -> None:
    healthy = [{"metric": {}, "values": [[1, "100"], [2, "200"]]}]
    payloads = {
        "ok-1": _prometheus_payload(healthy),
        "ok-2": _prometheus_payload(healthy),
        "nested-list": _prometheus_payload([["bad"]]),
        "null-result": _prometheus_payload(None),
    }

    def handler(request: httpx.Request) -> httpx.Response:
        query = request.url.params["query"]
        pod = next(name for name in payloads if f'pod="{name}"' in query)
        return httpx.Response(200, json=payloads[pod])

    jobs = [_job(pod, MetricKind.MEMORY) for pod in payloads]
    with PrometheusClient(
        "http://prom:9090", transport=httpx.MockTransport(handler)
    ) as client:
        config = PipelineConfig(workers=2, clock=lambda: NOW)
        result = MetricsPipeline(client, config).run(jobs)

    assert sorted(s.pod_name for s in result.summaries) == ["ok-1", "ok-2"]
    assert sorted(job.pod_name for job in result.dropped) == [
        "nested-list",
        "null-result",
    ]
    assert all(s.max == new_memory(200) for s in result.summaries)


def test_single_cpu_sample_counts_its_data_point() -> None:
    backend = FakeBackend(samples={"fresh": [Sample(0, 1.0)]})
    (summary,) = _run(backend, [_job("fresh")], 1).summaries
    assert not summary.has_data
    assert summary.data_points == 1
