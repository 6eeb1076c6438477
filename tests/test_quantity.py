"""Tests for CPU and memory quantities."""

from __future__ import annotations

import pytest

from kre.domain.quantity import (
    MAX_QUANTITY,
    CpuQuantity,
    MemoryQuantity,
    new_cpu,
    new_memory,
)


def test_cpu_renders_millis() -> None:
    assert str(new_cpu(1500)) == "1500m"
    assert str(new_cpu(0)) == "0m"


def test_memory_renders_whole_mebibytes() -> None:
    assert str(new_memory(512 * 1024**2)) == "512Mi"
    assert str(new_memory(1024**2 + 1)) == "1Mi"
    assert str(new_memory(1000)) == "0Mi"


def test_add_accumulates_in_place() -> None:
    total = new_cpu(0)
    total.add(new_cpu(250)).add(new_cpu(750))
    assert total == CpuQuantity(1000)


def test_add_refuses_overflow() -> None:
    total = new_memory(MAX_QUANTITY)
    with pytest.raises(OverflowError):
        total.add(new_memory(1))


def test_percent_of_truncates() -> None:
    assert new_cpu(1000).percent_of(new_cpu(3000)) == 33
    assert new_cpu(2000).percent_of(new_cpu(4000)) == 50


def test_percent_of_zero_capacity_is_zero() -> None:
    assert new_memory(1024).percent_of(MemoryQuantity()) == 0


def test_compare() -> None:
    assert new_cpu(1).compare(new_cpu(2)) == -1
    assert new_cpu(2).compare(new_cpu(2)) == 0
    assert new_memory(3).compare(new_memory(2)) == 1


def test_copy_is_independent() -> None:
    original = new_cpu(100)
    clone = original.copy()
    clone.add(new_cpu(1))
    assert original.milli == 100
    assert clone.milli == 101
