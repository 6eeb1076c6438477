"""Tests for the kubectl-backed cluster inventory."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

from kre.domain.quantity import new_cpu, new_memory
from kre.infrastructure.cluster_inventory import (
    KubectlInventory,
    active_pods_selector,
    node_capacity,
)


def _pod(name: str, phase: str = "Running", **resources: Any) -> dict[str, Any]:
    return {
        "metadata": {"name": name, "namespace": "shop", "uid": f"uid-{name}"},
        "spec": {
            "nodeName": "node-a",
            "containers": [
                {"name": "app", "resources": resources},
                {"name": "sidecar"},
            ],
        },
        "status": {"phase": phase},
    }


def test_node_capacity_prefers_allocatable() -> None:
    node = {
        "metadata": {"name": "node-a"},
        "status": {
            "allocatable": {"cpu": "3920m", "memory": "15Gi"},
            "capacity": {"cpu": "4", "memory": "16Gi"},
        },
    }
    capacity = node_capacity(node)
    assert capacity.cpu == new_cpu(3920)
    assert capacity.memory == new_memory(15 * 1024**3)


def test_node_capacity_falls_back_to_capacity() -> None:
    node = {"metadata": {"name": "n"}, "status": {"capacity": {"cpu": "2"}}}
    capacity = node_capacity(node)
    assert capacity.cpu == new_cpu(2000)
    assert capacity.memory == new_memory(0)


def test_active_pods_selector() -> None:
    assert active_pods_selector() == "status.phase!=Succeeded,status.phase!=Failed"
    assert active_pods_selector("node-a").startswith("spec.nodeName=node-a,")


def test_list_active_containers() -> None:
    payload = {
        "items": [
            _pod(
                "web",
                requests={"cpu": "250m", "memory": "128Mi"},
                limits={"cpu": "1", "memory": "256Mi"},
            ),
            _pod("done", phase="Succeeded"),
        ]
    }
    with patch(
        "kre.infrastructure.cluster_inventory.kubectl_json", return_value=payload
    ) as fetch:
        containers = KubectlInventory().list_active_containers("shop", "node-a")

    command = fetch.call_args.args[0]
    assert command.startswith("get pods -n shop --field-selector=spec.nodeName=node-a")
    assert [(c.pod_name, c.container_name) for c in containers] == [
        ("web", "app"),
        ("web", "sidecar"),
    ]
    app, sidecar = containers
    assert app.cpu_request == new_cpu(250)
    assert app.cpu_limit == new_cpu(1000)
    assert app.memory_limit == new_memory(256 * 1024**2)
    assert app.node_name == "node-a"
    assert sidecar.cpu_request == new_cpu(0)


def test_list_active_containers_all_namespaces() -> None:
    with patch(
        "kre.infrastructure.cluster_inventory.kubectl_json",
        return_value={"items": []},
    ) as fetch:
        assert KubectlInventory().list_active_containers(None) == []
    assert "--all-namespaces" in fetch.call_args.args[0]


def test_list_nodes() -> None:
    payload = {
        "items": [
            {"metadata": {"name": "a"}, "status": {"allocatable": {"cpu": "2"}}},
            {"metadata": {"name": "b"}, "status": {"allocatable": {"cpu": "4"}}},
        ]
    }
    with patch(
        "kre.infrastructure.cluster_inventory.kubectl_json", return_value=payload
    ):
        nodes = KubectlInventory().list_nodes()
    assert [(node.name, node.cpu.milli) for node in nodes] == [("a", 2000), ("b", 4000)]
