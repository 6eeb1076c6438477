"""Bounded worker pool collecting historical metrics per container.

One dispatcher thread feeds ``MetricJob`` items into a small job queue and,
after the last job, one stop marker per worker. Each worker queries the
backend, reduces the samples and pushes the summary to the result queue. A
completion counter guarded by a lock lets the last worker to exit close the
result queue, exactly once. The calling thread collects until it is closed.

Any error raised while querying the backend (HTTP failures, timeouts,
malformed payloads) drops that job with a warning. Sample sets too small to
reduce become "no data" summaries. Errors raised while reducing samples, such
as non-increasing CPU timestamps, are re-raised to the caller once the pool has
drained.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol, cast

from kre.config import DEFAULT_WORKERS
from kre.domain.records import (
    ContainerMetricsSummary,
    ContainerSpec,
    MetricJob,
    MetricKind,
)
from kre.domain.stats import InsufficientDataError, Sample, summarize

logger = logging.getLogger(__name__)


class BackendConfigurationError(ValueError):
    """Raised when the time-series backend cannot be constructed."""


class TimeSeriesBackend(Protocol):
    """Query contract consumed by the pipeline."""

    def selector_for(self, job: MetricJob) -> str:
        """Return the backend selector for ``job``'s series."""
        ...

    def query_range(
        self, selector: str, start: datetime, end: datetime
    ) -> list[Sample]:
        """Return the samples of ``selector`` between ``start`` and ``end``."""
        ...


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class PipelineConfig:
    """Worker pool tuning."""

    workers: int = DEFAULT_WORKERS
    queue_size: int | None = None
    clock: Callable[[], datetime] = _utc_now

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")

    @property
    def job_queue_size(self) -> int:
        """Return the job queue bound (defaults to the worker count)."""
        return self.queue_size if self.queue_size is not None else self.workers


@dataclass
class CollectionResult:
    """Outcome of one pipeline run."""

    summaries: list[ContainerMetricsSummary] = field(default_factory=list)
    dropped: list[MetricJob] = field(default_factory=list)
    submitted: int = 0

    @property
    def accounted(self) -> bool:
        """Return whether every submitted job produced a summary or a drop."""
        return len(self.summaries) + len(self.dropped) == self.submitted

    @property
    def total_data_points(self) -> int:
        """Return the number of raw samples behind all summaries."""
        return sum(summary.data_points for summary in self.summaries)


@dataclass(frozen=True)
class _Summary:
    summary: ContainerMetricsSummary


@dataclass(frozen=True)
class _Dropped:
    job: MetricJob
    error: Exception


@dataclass(frozen=True)
class _Fatal:
    error: BaseException


_STOP = object()
_CLOSED = object()


def build_jobs(
    containers: Iterable[ContainerSpec],
    window: timedelta,
    kind: MetricKind,
) -> list[MetricJob]:
    """Return one job per active container for ``kind``."""
    return [
        MetricJob(
            namespace=container.namespace,
            container_name=container.container_name,
            pod_name=container.pod_name,
            pod_uid=container.pod_uid,
            node_name=container.node_name or "",
            window=window,
            metric_kind=kind,
        )
        for container in containers
    ]


class MetricsPipeline:
    """Fan jobs out to worker threads and fan summaries back in."""

    def __init__(
        self,
        backend: TimeSeriesBackend,
        config: PipelineConfig | None = None,
    ) -> None:
        self.backend = backend
        self.config = config or PipelineConfig()

    def _fetch(self, job: MetricJob, end: datetime) -> list[Sample]:
        selector = self.backend.selector_for(job)
        return self.backend.query_range(selector, end - job.window, end)

    def _reduce(
        self, job: MetricJob, samples: list[Sample]
    ) -> ContainerMetricsSummary:
        try:
            return summarize(
                job.metric_kind,
                samples,
                container_name=job.container_name,
                pod_name=job.pod_name,
                node_name=job.node_name,
            )
        except InsufficientDataError:
            logger.info(
                "not enough %s samples for %s/%s (%d)",
                job.metric_kind.value,
                job.pod_name,
                job.container_name,
                len(samples),
            )
            return ContainerMetricsSummary.no_data(
                job.container_name,
                job.pod_name,
                job.node_name,
                job.metric_kind,
                data_points=len(samples),
            )

    def _dispatch(
        self,
        jobs: Iterable[MetricJob],
        job_queue: queue.Queue[object],
        results: queue.Queue[object],
        counter: list[int],
    ) -> None:
        try:
            for job in jobs:
                job_queue.put(job)
                counter[0] += 1
        except Exception as exc:
            results.put(_Fatal(exc))
        finally:
            # stop markers go in only after the last job
            for _ in range(self.config.workers):
                job_queue.put(_STOP)

    def _work(
        self,
        end: datetime,
        job_queue: queue.Queue[object],
        results: queue.Queue[object],
        on_exit: Callable[[], None],
    ) -> None:
        try:
            while True:
                item = job_queue.get()
                if item is _STOP:
                    return
                job = cast(MetricJob, item)
                try:
                    samples = self._fetch(job, end)
                except Exception as exc:
                    results.put(_Dropped(job, exc))
                    continue
                try:
                    results.put(_Summary(self._reduce(job, samples)))
                except Exception as exc:
                    results.put(_Fatal(exc))
        finally:
            on_exit()

    def run(self, jobs: Iterable[MetricJob]) -> CollectionResult:
        """Collect a summary for every job.

        Results arrive in completion order; callers rank them before display.

        Raises
        ------
        Exception
            The first reduction error raised by a worker or the dispatcher,
            after every worker has exited.
        """
        workers = self.config.workers
        end = self.config.clock()
        job_queue: queue.Queue[object] = queue.Queue(
            maxsize=self.config.job_queue_size
        )
        results: queue.Queue[object] = queue.Queue()
        dispatched = [0]
        remaining = [workers]
        lock = threading.Lock()

        def on_exit() -> None:
            with lock:
                remaining[0] -= 1
                last = remaining[0] == 0
            if last:
                results.put(_CLOSED)

        dispatcher = threading.Thread(
            target=self._dispatch,
            args=(jobs, job_queue, results, dispatched),
            name="kre-dispatcher",
            daemon=True,
        )
        pool = [
            threading.Thread(
                target=self._work,
                args=(end, job_queue, results, on_exit),
                name=f"kre-worker-{index}",
                daemon=True,
            )
            for index in range(workers)
        ]
        for thread in pool:
            thread.start()
        dispatcher.start()

        collected = CollectionResult()
        fatal: BaseException | None = None
        while True:
            message = results.get()
            if message is _CLOSED:
                break
            if isinstance(message, _Summary):
                collected.summaries.append(message.summary)
            elif isinstance(message, _Dropped):
                job = message.job
                logger.warning(
                    "dropping %s metrics for %s/%s: %s",
                    job.metric_kind.value,
                    job.pod_name,
                    job.container_name,
                    message.error,
                )
                collected.dropped.append(job)
            elif isinstance(message, _Fatal) and fatal is None:
                fatal = message.error

        dispatcher.join()
        for thread in pool:
            thread.join()
        collected.submitted = dispatched[0]

        if fatal is not None:
            raise fatal
        logger.debug(
            "collected %d summaries, dropped %d of %d jobs",
            len(collected.summaries),
            len(collected.dropped),
            collected.submitted,
        )
        return collected
