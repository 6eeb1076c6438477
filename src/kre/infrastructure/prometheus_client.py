"""Prometheus range-query backend for historical container metrics."""

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx

from kre.domain.records import MetricJob, MetricKind
from kre.domain.stats import Sample

logger = logging.getLogger(__name__)

# Prometheus rejects range queries returning more points than this per series.
MAX_POINTS_PER_SERIES = 11_000

METRIC_NAMES: dict[MetricKind, str] = {
    MetricKind.CPU: "container_cpu_usage_seconds_total",
    MetricKind.MEMORY: "container_memory_working_set_bytes",
}


class PrometheusError(RuntimeError):
    """Prometheus API request failed."""


class PrometheusConnectionError(PrometheusError):
    """Prometheus could not be reached after retries."""


class PrometheusQueryError(PrometheusError):
    """Prometheus rejected the query or returned an unexpected payload."""


@dataclass(frozen=True)
class PrometheusClientConfig:
    """Runtime tuning options for Prometheus API calls."""

    timeout_seconds: float = 30.0
    max_retries: int = 2
    retry_base_delay_seconds: float = 0.3
    step_seconds: int = 60


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def build_selector(kind: MetricKind, namespace: str, pod: str, container: str) -> str:
    """Return the PromQL expression for one container's metric.

    Series for the same container (e.g. across restarts) are summed so each
    step yields a single point.
    """
    labels = ",".join(
        f'{name}="{_escape(value)}"'
        for name, value in (
            ("namespace", namespace),
            ("pod", pod),
            ("container", container),
        )
    )
    return f"sum({METRIC_NAMES[kind]}{{{labels}}})"


def parse_matrix(payload: dict[str, Any]) -> list[Sample]:
    """Flatten a ``matrix`` result into samples, dropping non-finite values."""
    data = payload.get("data")
    if not isinstance(data, dict) or data.get("resultType", "matrix") != "matrix":
        raise PrometheusQueryError(f"unexpected result shape: {str(payload)[:200]}")

    result = data.get("result", [])
    if not isinstance(result, list):
        raise PrometheusQueryError(f"result is not a list: {str(result)[:200]}")

    samples: list[Sample] = []
    for series in result:
        values = series.get("values") if isinstance(series, dict) else None
        if not isinstance(values, list):
            raise PrometheusQueryError(f"malformed series: {str(series)[:200]}")
        for point in values:
            try:
                timestamp, raw = float(point[0]), float(point[1])
            except (TypeError, ValueError, IndexError) as exc:
                raise PrometheusQueryError(f"malformed sample: {point!r}") from exc
            if math.isfinite(raw):
                samples.append(Sample(timestamp=timestamp, value=raw))
    return samples


class PrometheusClient:
    """Synchronous Prometheus HTTP API client.

    ``httpx.Client`` is safe to share between threads, so one instance serves
    every pipeline worker.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        config: PrometheusClientConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Create Prometheus API client.

        Parameters
        ----------
        base_url : str
            Prometheus base URL, e.g. ``http://prometheus:9090``.
        token : str | None
            Optional bearer token.
        config : PrometheusClientConfig | None
            Runtime tuning options.
        transport : httpx.BaseTransport | None
            Custom transport, used by tests.
        """
        if not base_url:
            raise ValueError("Prometheus base URL must not be empty")
        self.base_url = base_url.rstrip("/")
        self.config = config or PrometheusClientConfig()
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=self.config.timeout_seconds,
            transport=transport,
        )

    def __enter__(self) -> "PrometheusClient":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def close(self) -> None:
        """Close underlying HTTP client."""
        self._client.close()

    def _get_with_retries(self, path: str, params: dict[str, str]) -> httpx.Response:
        last_exc: Exception | None = None
        for attempt in range(self.config.max_retries + 1):
            try:
                response = self._client.get(path, params=params)
                if response.status_code >= 500 and attempt < self.config.max_retries:
                    time.sleep(self.config.retry_base_delay_seconds * (2**attempt))
                    continue
                return response
            except httpx.HTTPError as exc:
                last_exc = exc
                if attempt < self.config.max_retries:
                    time.sleep(self.config.retry_base_delay_seconds * (2**attempt))
                    continue
                break
        raise PrometheusConnectionError(
            f"Prometheus request failed: {last_exc}"
        ) from last_exc

    def step_for(self, start: datetime, end: datetime) -> int:
        """Return a step (seconds) keeping the series under the point limit."""
        window = max((end - start).total_seconds(), 0.0)
        return max(self.config.step_seconds, math.ceil(window / MAX_POINTS_PER_SERIES))

    def selector_for(self, job: MetricJob) -> str:
        """Return the query selecting ``job``'s container series."""
        return build_selector(
            job.metric_kind, job.namespace, job.pod_name, job.container_name
        )

    def query_range(
        self, selector: str, start: datetime, end: datetime
    ) -> list[Sample]:
        """Run a range query and return its points.

        Raises
        ------
        PrometheusError
            On transport failure, non-success status or malformed payload.
        """
        params = {
            "query": selector,
            "start": f"{start.timestamp():.3f}",
            "end": f"{end.timestamp():.3f}",
            "step": f"{self.step_for(start, end)}s",
        }
        logger.debug("query_range %s", params)
        response = self._get_with_retries("/api/v1/query_range", params)
        if response.status_code >= 400:
            raise PrometheusQueryError(
                f"Prometheus API error {response.status_code}: {response.text[:200]}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise PrometheusQueryError("invalid JSON in Prometheus response") from exc
        if not isinstance(payload, dict) or payload.get("status") != "success":
            raise PrometheusQueryError(f"Prometheus error: {str(payload)[:200]}")
        return parse_matrix(payload)
