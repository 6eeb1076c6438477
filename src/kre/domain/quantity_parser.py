"""Parsers for Kubernetes resource quantity strings."""

from decimal import ROUND_CEILING, Decimal, InvalidOperation

from kre.domain.quantity import CpuQuantity, MemoryQuantity, new_cpu, new_memory

_EMPTY_VALUES = {"", "0", "<none>"}

_SUFFIXES: dict[str, Decimal] = {
    "Ki": Decimal(1024),
    "Mi": Decimal(1024**2),
    "Gi": Decimal(1024**3),
    "Ti": Decimal(1024**4),
    "Pi": Decimal(1024**5),
    "Ei": Decimal(1024**6),
    "n": Decimal("1e-9"),
    "u": Decimal("1e-6"),
    "m": Decimal("1e-3"),
    "k": Decimal(1000),
    "M": Decimal(1000**2),
    "G": Decimal(1000**3),
    "T": Decimal(1000**4),
    "P": Decimal(1000**5),
    "E": Decimal(1000**6),
}


def parse_quantity(raw: str | int | float | None) -> Decimal:
    """Parse a quantity string (``250m``, ``1Gi``, ``1e3``) into base units.

    Raises
    ------
    ValueError
        If the string is not a valid quantity.
    """
    if raw is None:
        return Decimal(0)
    value = str(raw).strip()
    if value in _EMPTY_VALUES:
        return Decimal(0)

    # two-letter binary suffixes first so "Mi" is not read as "M" + "i"
    for suffix in sorted(_SUFFIXES, key=len, reverse=True):
        if value.endswith(suffix):
            number = value[: -len(suffix)]
            multiplier = _SUFFIXES[suffix]
            break
    else:
        number = value
        multiplier = Decimal(1)

    try:
        return Decimal(number) * multiplier
    except InvalidOperation as exc:
        raise ValueError(f"invalid quantity: {raw!r}") from exc


def parse_cpu(cpu_str: str | int | float | None) -> int:
    """Parse CPU quantity and return millicores, rounding fractions up."""
    amount = parse_quantity(cpu_str) * 1000
    return int(amount.to_integral_value(rounding=ROUND_CEILING))


def parse_memory(memory_str: str | int | float | None) -> int:
    """Parse memory quantity and return bytes, rounding fractions up."""
    amount = parse_quantity(memory_str)
    return int(amount.to_integral_value(rounding=ROUND_CEILING))


def cpu_quantity(cpu_str: str | int | float | None) -> CpuQuantity:
    """Parse a CPU string straight into a ``CpuQuantity``."""
    return new_cpu(parse_cpu(cpu_str))


def memory_quantity(memory_str: str | int | float | None) -> MemoryQuantity:
    """Parse a memory string straight into a ``MemoryQuantity``."""
    return new_memory(parse_memory(memory_str))
