"""Exact CPU and memory quantities.

CPU is held in milli-units (``1000`` is one core) and memory in bytes. Both are
plain Python integers, so arithmetic never loses precision. Cluster-wide totals
are assumed to fit in a signed 63-bit range; ``add`` refuses to leave it.
"""

from __future__ import annotations

from dataclasses import dataclass

MAX_QUANTITY = 2**63 - 1
MIN_QUANTITY = -(2**63)

_MIB = 1024 * 1024


def _checked(value: int) -> int:
    if not MIN_QUANTITY <= value <= MAX_QUANTITY:
        raise OverflowError(f"quantity {value} exceeds the 63-bit range")
    return value


def _percent(value: int, capacity: int) -> int:
    """Return floor(value / capacity * 100); zero capacity reports 0%."""
    if capacity == 0:
        return 0
    return (value * 100) // capacity


@dataclass(eq=True)
class CpuQuantity:
    """CPU amount in milli-units."""

    milli: int = 0

    @property
    def value(self) -> int:
        """Return the underlying integer magnitude."""
        return self.milli

    def add(self, other: CpuQuantity) -> CpuQuantity:
        """Accumulate ``other`` into this quantity in place."""
        self.milli = _checked(self.milli + other.milli)
        return self

    def percent_of(self, capacity: CpuQuantity) -> int:
        """Return the truncated percentage of ``capacity``."""
        return _percent(self.milli, capacity.milli)

    def compare(self, other: CpuQuantity) -> int:
        """Return -1, 0 or 1 comparing milli-values."""
        return (self.milli > other.milli) - (self.milli < other.milli)

    def copy(self) -> CpuQuantity:
        """Return an independent copy."""
        return CpuQuantity(self.milli)

    def __str__(self) -> str:
        return f"{self.milli}m"


@dataclass(eq=True)
class MemoryQuantity:
    """Memory amount in bytes; rendered in MiB."""

    num_bytes: int = 0

    @property
    def value(self) -> int:
        """Return the underlying integer magnitude."""
        return self.num_bytes

    def add(self, other: MemoryQuantity) -> MemoryQuantity:
        """Accumulate ``other`` into this quantity in place."""
        self.num_bytes = _checked(self.num_bytes + other.num_bytes)
        return self

    def percent_of(self, capacity: MemoryQuantity) -> int:
        """Return the truncated percentage of ``capacity``."""
        return _percent(self.num_bytes, capacity.num_bytes)

    def compare(self, other: MemoryQuantity) -> int:
        """Return -1, 0 or 1 comparing byte values."""
        return (self.num_bytes > other.num_bytes) - (self.num_bytes < other.num_bytes)

    def copy(self) -> MemoryQuantity:
        """Return an independent copy."""
        return MemoryQuantity(self.num_bytes)

    def __str__(self) -> str:
        mib = abs(self.num_bytes) // _MIB
        return f"{-mib if self.num_bytes < 0 else mib}Mi"


Quantity = CpuQuantity | MemoryQuantity


def new_cpu(milli_value: int) -> CpuQuantity:
    """Build a CPU quantity from an exact milli-unit integer."""
    return CpuQuantity(_checked(int(milli_value)))


def new_memory(num_bytes: int) -> MemoryQuantity:
    """Build a memory quantity from an exact byte count."""
    return MemoryQuantity(_checked(int(num_bytes)))
