"""Cluster inventory read through kubectl."""

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Protocol

from kre.domain.quantity_parser import cpu_quantity, memory_quantity
from kre.domain.records import ContainerSpec, NodeCapacity
from kre.infrastructure.kubectl_client import kubectl_json

logger = logging.getLogger(__name__)

TERMINATED_PHASES = ("Succeeded", "Failed")


class ClusterInventory(Protocol):
    """Source of node capacity and active containers."""

    def list_nodes(self) -> list[NodeCapacity]:
        """Return schedulable capacity of every node."""
        ...

    def list_active_containers(
        self, namespace: str | None, node: str | None = None
    ) -> list[ContainerSpec]:
        """Return containers of pods that have not terminated."""
        ...


def node_capacity(node: dict[str, Any]) -> NodeCapacity:
    """Return node allocatable resources, falling back to capacity."""
    status = node.get("status", {})
    resources = status.get("allocatable") or status.get("capacity") or {}
    return NodeCapacity(
        name=node["metadata"]["name"],
        cpu=cpu_quantity(resources.get("cpu")),
        memory=memory_quantity(resources.get("memory")),
    )


def pod_containers(pod: dict[str, Any]) -> Iterator[ContainerSpec]:
    """Yield one spec per container declared by ``pod``."""
    metadata = pod["metadata"]
    spec = pod.get("spec", {})
    for container in spec.get("containers", []):
        resources = container.get("resources") or {}
        requests = resources.get("requests") or {}
        limits = resources.get("limits") or {}
        yield ContainerSpec(
            namespace=metadata.get("namespace", ""),
            pod_name=metadata["name"],
            pod_uid=metadata.get("uid", ""),
            container_name=container["name"],
            node_name=spec.get("nodeName"),
            cpu_request=cpu_quantity(requests.get("cpu")),
            cpu_limit=cpu_quantity(limits.get("cpu")),
            memory_request=memory_quantity(requests.get("memory")),
            memory_limit=memory_quantity(limits.get("memory")),
        )


def active_pods_selector(node: str | None = None) -> str:
    """Build the field selector excluding terminated pods."""
    terms = [f"status.phase!={phase}" for phase in TERMINATED_PHASES]
    if node:
        terms.insert(0, f"spec.nodeName={node}")
    return ",".join(terms)


class KubectlInventory:
    """Read nodes and pods with kubectl JSON output."""

    def __init__(self, kubeconfig: Path | None = None) -> None:
        self.kubeconfig = kubeconfig

    def list_nodes(self) -> list[NodeCapacity]:
        """Return schedulable capacity of every node."""
        data = kubectl_json("get nodes", kubeconfig=self.kubeconfig)
        nodes = [node_capacity(item) for item in data.get("items", [])]
        logger.debug("found %d nodes", len(nodes))
        return nodes

    def list_active_containers(
        self, namespace: str | None, node: str | None = None
    ) -> list[ContainerSpec]:
        """Return containers of non-terminated pods.

        An empty or ``None`` namespace lists every namespace.
        """
        scope = f"-n {namespace}" if namespace else "--all-namespaces"
        data = kubectl_json(
            f"get pods {scope} --field-selector={active_pods_selector(node)}",
            kubeconfig=self.kubeconfig,
        )
        containers: list[ContainerSpec] = []
        for pod in data.get("items", []):
            if pod.get("status", {}).get("phase") in TERMINATED_PHASES:
                continue
            containers.extend(pod_containers(pod))
        logger.debug("found %d active containers", len(containers))
        return containers
