"""Record types shared by the allocation and historical reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

from kre.domain.quantity import CpuQuantity, MemoryQuantity, new_cpu, new_memory


class MetricKind(str, Enum):
    """Metric family evaluated by the historical report."""

    CPU = "cpu"
    MEMORY = "memory"

    @property
    def label(self) -> str:
        """Return the short display label."""
        return "CPU" if self is MetricKind.CPU else "Memory"


@dataclass(frozen=True)
class NodeCapacity:
    """Schedulable resources of one node."""

    name: str
    cpu: CpuQuantity
    memory: MemoryQuantity


@dataclass(frozen=True)
class ClusterCapacity:
    """Resources summed across every node of the cluster."""

    cpu: CpuQuantity = field(default_factory=CpuQuantity)
    memory: MemoryQuantity = field(default_factory=MemoryQuantity)
    nodes: tuple[NodeCapacity, ...] = ()

    @classmethod
    def from_nodes(cls, nodes: list[NodeCapacity]) -> ClusterCapacity:
        """Sum node capacities into a cluster total."""
        cpu, memory = new_cpu(0), new_memory(0)
        for node in nodes:
            cpu.add(node.cpu)
            memory.add(node.memory)
        return cls(cpu=cpu, memory=memory, nodes=tuple(nodes))

    def for_node(self, node_name: str | None) -> tuple[CpuQuantity, MemoryQuantity]:
        """Return capacity of ``node_name`` or the cluster total if unknown."""
        for node in self.nodes:
            if node.name == node_name:
                return node.cpu, node.memory
        return self.cpu, self.memory


@dataclass(frozen=True)
class ContainerSpec:
    """Active container with its declared requests and limits."""

    namespace: str
    pod_name: str
    pod_uid: str
    container_name: str
    node_name: str | None
    cpu_request: CpuQuantity
    cpu_limit: CpuQuantity
    memory_request: MemoryQuantity
    memory_limit: MemoryQuantity


@dataclass(frozen=True)
class ContainerResourceRow:
    """Requests and limits of one container against node capacity."""

    namespace: str
    name: str
    cpu_request: CpuQuantity
    cpu_limit: CpuQuantity
    percent_cpu_request: int
    percent_cpu_limit: int
    memory_request: MemoryQuantity
    memory_limit: MemoryQuantity
    percent_memory_request: int
    percent_memory_limit: int

    @classmethod
    def from_spec(
        cls,
        spec: ContainerSpec,
        cpu_capacity: CpuQuantity,
        memory_capacity: MemoryQuantity,
    ) -> ContainerResourceRow:
        """Build a row, computing percentages of the given capacity."""
        return cls(
            namespace=spec.namespace,
            name=f"{spec.pod_name}/{spec.container_name}",
            cpu_request=spec.cpu_request,
            cpu_limit=spec.cpu_limit,
            percent_cpu_request=spec.cpu_request.percent_of(cpu_capacity),
            percent_cpu_limit=spec.cpu_limit.percent_of(cpu_capacity),
            memory_request=spec.memory_request,
            memory_limit=spec.memory_limit,
            percent_memory_request=spec.memory_request.percent_of(memory_capacity),
            percent_memory_limit=spec.memory_limit.percent_of(memory_capacity),
        )


@dataclass(frozen=True)
class ContainerMetricsSummary:
    """Summary statistics of one container's metric over a time window.

    CPU summaries carry ``avg``; memory summaries carry ``mode``. A summary with
    ``has_data`` false was produced for a container with too few samples to
    reduce (none, or a single CPU sample); its quantity fields are ``None`` and
    ``data_points`` still counts the samples received.
    """

    container_name: str
    pod_name: str
    node_name: str
    metric_kind: MetricKind
    last: CpuQuantity | MemoryQuantity | None = None
    min: CpuQuantity | MemoryQuantity | None = None
    max: CpuQuantity | MemoryQuantity | None = None
    avg: CpuQuantity | None = None
    mode: MemoryQuantity | None = None
    data_points: int = 0

    @property
    def has_data(self) -> bool:
        """Return whether the summary was computed from samples."""
        return self.last is not None

    @property
    def name(self) -> str:
        """Return the ``pod/container`` display name."""
        return f"{self.pod_name}/{self.container_name}"

    def central(self) -> CpuQuantity | MemoryQuantity | None:
        """Return the kind-specific central value (average or mode)."""
        return self.avg if self.metric_kind is MetricKind.CPU else self.mode

    @classmethod
    def no_data(
        cls,
        container_name: str,
        pod_name: str,
        node_name: str,
        metric_kind: MetricKind,
        *,
        data_points: int = 0,
    ) -> ContainerMetricsSummary:
        """Build a placeholder for a container with too few samples to reduce."""
        return cls(
            container_name=container_name,
            pod_name=pod_name,
            node_name=node_name,
            metric_kind=metric_kind,
            data_points=data_points,
        )


@dataclass(frozen=True)
class MetricJob:
    """One unit of work for the metrics collection pipeline."""

    namespace: str
    container_name: str
    pod_name: str
    pod_uid: str
    node_name: str
    window: timedelta
    metric_kind: MetricKind
