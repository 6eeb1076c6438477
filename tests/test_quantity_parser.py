"""Tests for Kubernetes quantity parsing."""

from __future__ import annotations

from decimal import Decimal

import pytest

from kre.domain.quantity import CpuQuantity, MemoryQuantity
from kre.domain.quantity_parser import (
    cpu_quantity,
    memory_quantity,
    parse_cpu,
    parse_memory,
    parse_quantity,
)


def test_parse_cpu_units() -> None:
    assert parse_cpu("250m") == 250
    assert parse_cpu("1") == 1000
    assert parse_cpu("0.5") == 500
    assert parse_cpu("1500u") == 2
    assert parse_cpu("2000000n") == 2


def test_parse_cpu_none_values() -> None:
    assert parse_cpu("") == 0
    assert parse_cpu("0") == 0
    assert parse_cpu("<none>") == 0
    assert parse_cpu(None) == 0


def test_parse_memory_units() -> None:
    assert parse_memory("1Ki") == 1024
    assert parse_memory("1Mi") == 1024**2
    assert parse_memory("1Gi") == 1024**3
    assert parse_memory("2G") == 2_000_000_000
    assert parse_memory("128974848") == 128974848
    assert parse_memory("1e3") == 1000


def test_parse_quantity_rejects_garbage() -> None:
    with pytest.raises(ValueError, match="invalid quantity"):
        parse_quantity("lots")


def test_parse_quantity_keeps_exact_decimal() -> None:
    assert parse_quantity("100m") == Decimal("0.1")


def test_quantity_helpers_build_typed_values() -> None:
    assert cpu_quantity("2") == CpuQuantity(2000)
    assert memory_quantity("64Mi") == MemoryQuantity(64 * 1024**2)
