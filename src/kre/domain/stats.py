"""Reduce raw time-series samples to summary statistics.

CPU samples are cumulative usage counters (core-seconds); they are turned into
a rate series before reduction, so a CPU summary describes ``N - 1`` rates for
``N`` samples. Memory samples are instantaneous gauges reduced as-is, with the
mode as the central value. Every reduced value is converted to integer
milli-units or bytes with round-half-to-even.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import pandas as pd

from kre.domain.quantity import new_cpu, new_memory
from kre.domain.records import ContainerMetricsSummary, MetricKind


class InsufficientDataError(ValueError):
    """Raised when a sample set is too small to summarize."""


class NonIncreasingTimestampError(ValueError):
    """Raised when adjacent CPU samples share or reverse a timestamp."""


@dataclass(frozen=True)
class Sample:
    """One point of a time series: epoch seconds and raw value."""

    timestamp: float
    value: float


def _ordered_frame(samples: Iterable[Sample]) -> pd.DataFrame:
    """Return samples sorted by timestamp, keeping arrival order on ties."""
    rows = [(s.timestamp, s.value) for s in samples]
    if not rows:
        raise InsufficientDataError("no samples to summarize")
    frame = pd.DataFrame(rows, columns=["timestamp", "value"], dtype="float64")
    return frame.sort_values("timestamp", kind="stable", ignore_index=True)


def _to_int(value: float) -> int:
    return int(round(float(value)))


def cpu_rates(samples: Iterable[Sample]) -> pd.Series:
    """Return the milli-core rate series derived from cumulative samples."""
    frame = _ordered_frame(samples)
    intervals = frame["timestamp"].diff().iloc[1:]
    if (intervals <= 0).any():
        position = int(intervals[intervals <= 0].index[0])
        raise NonIncreasingTimestampError(
            "CPU samples must have strictly increasing timestamps "
            f"(sample {position} at {frame['timestamp'].iloc[position]})"
        )
    deltas = frame["value"].diff().iloc[1:]
    return (deltas / intervals * 1000).reset_index(drop=True)


def summarize_cpu(
    samples: list[Sample],
    *,
    container_name: str = "",
    pod_name: str = "",
    node_name: str = "",
) -> ContainerMetricsSummary:
    """Summarize cumulative CPU usage samples as last/min/max/avg rates."""
    rates = cpu_rates(samples)
    if rates.empty:
        raise InsufficientDataError("at least two CPU samples are needed for a rate")
    return ContainerMetricsSummary(
        container_name=container_name,
        pod_name=pod_name,
        node_name=node_name,
        metric_kind=MetricKind.CPU,
        last=new_cpu(_to_int(rates.iloc[-1])),
        min=new_cpu(_to_int(rates.min())),
        max=new_cpu(_to_int(rates.max())),
        avg=new_cpu(_to_int(rates.mean())),
        data_points=len(samples),
    )


def memory_mode(values: pd.Series) -> int:
    """Return the most frequent value; the smallest one wins a tie."""
    counts = values.value_counts()
    top = counts.max()
    return int(counts[counts == top].index.min())


def summarize_memory(
    samples: list[Sample],
    *,
    container_name: str = "",
    pod_name: str = "",
    node_name: str = "",
) -> ContainerMetricsSummary:
    """Summarize memory gauge samples as last/min/max/mode."""
    frame = _ordered_frame(samples)
    values = frame["value"].round().astype("int64")
    return ContainerMetricsSummary(
        container_name=container_name,
        pod_name=pod_name,
        node_name=node_name,
        metric_kind=MetricKind.MEMORY,
        last=new_memory(int(values.iloc[-1])),
        min=new_memory(int(values.min())),
        max=new_memory(int(values.max())),
        mode=new_memory(memory_mode(values)),
        data_points=len(samples),
    )


def summarize(
    kind: MetricKind,
    samples: list[Sample],
    *,
    container_name: str = "",
    pod_name: str = "",
    node_name: str = "",
) -> ContainerMetricsSummary:
    """Dispatch to the reduction matching ``kind``."""
    reducer = summarize_cpu if kind is MetricKind.CPU else summarize_memory
    return reducer(
        samples,
        container_name=container_name,
        pod_name=pod_name,
        node_name=node_name,
    )
