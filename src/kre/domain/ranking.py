"""Sort report records by a field chosen at runtime.

Each record type publishes a table mapping display field names to typed
accessors. The comparator is picked once per sort from the field's kind, and
``reverse`` negates it, so equal keys keep their input order in both directions.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from functools import cmp_to_key
from typing import Any, Generic, TypeVar

from kre.domain.quantity import CpuQuantity, MemoryQuantity
from kre.domain.records import ContainerMetricsSummary, ContainerResourceRow

RecordT = TypeVar("RecordT")


class FieldKind(Enum):
    """Semantic type of a sortable field."""

    QUANTITY = "quantity"
    INTEGER = "integer"
    STRING = "string"


class UnknownFieldError(ValueError):
    """Raised for a sort field the record type does not define."""

    def __init__(self, field_name: str, valid: Iterable[str]) -> None:
        self.field_name = field_name
        self.valid = tuple(valid)
        super().__init__(
            f'"{field_name}" is not a valid field. '
            f"Possible values are: {', '.join(self.valid)}"
        )


@dataclass(frozen=True)
class FieldSpec(Generic[RecordT]):
    """Named, typed accessor for one record field."""

    name: str
    kind: FieldKind
    getter: Callable[[RecordT], Any]


FieldTable = Mapping[str, FieldSpec[Any]]


def _table(*specs: FieldSpec[Any]) -> dict[str, FieldSpec[Any]]:
    return {spec.name: spec for spec in specs}


RESOURCE_ROW_FIELDS: dict[str, FieldSpec[ContainerResourceRow]] = _table(
    FieldSpec("Namespace", FieldKind.STRING, lambda r: r.namespace),
    FieldSpec("Name", FieldKind.STRING, lambda r: r.name),
    FieldSpec("CpuReq", FieldKind.QUANTITY, lambda r: r.cpu_request),
    FieldSpec("CpuLimit", FieldKind.QUANTITY, lambda r: r.cpu_limit),
    FieldSpec("PercentCpuReq", FieldKind.INTEGER, lambda r: r.percent_cpu_request),
    FieldSpec("PercentCpuLimit", FieldKind.INTEGER, lambda r: r.percent_cpu_limit),
    FieldSpec("MemReq", FieldKind.QUANTITY, lambda r: r.memory_request),
    FieldSpec("MemLimit", FieldKind.QUANTITY, lambda r: r.memory_limit),
    FieldSpec(
        "PercentMemoryReq", FieldKind.INTEGER, lambda r: r.percent_memory_request
    ),
    FieldSpec(
        "PercentMemoryLimit", FieldKind.INTEGER, lambda r: r.percent_memory_limit
    ),
)

METRICS_SUMMARY_FIELDS: dict[str, FieldSpec[ContainerMetricsSummary]] = _table(
    FieldSpec("ContainerName", FieldKind.STRING, lambda m: m.container_name),
    FieldSpec("PodName", FieldKind.STRING, lambda m: m.pod_name),
    FieldSpec("NodeName", FieldKind.STRING, lambda m: m.node_name),
    FieldSpec("MetricKind", FieldKind.STRING, lambda m: m.metric_kind.value),
    FieldSpec("Last", FieldKind.QUANTITY, lambda m: m.last),
    FieldSpec("Min", FieldKind.QUANTITY, lambda m: m.min),
    FieldSpec("Max", FieldKind.QUANTITY, lambda m: m.max),
    FieldSpec("Avg", FieldKind.QUANTITY, lambda m: m.avg),
    FieldSpec("Mode", FieldKind.QUANTITY, lambda m: m.mode),
    FieldSpec("DataPoints", FieldKind.INTEGER, lambda m: m.data_points),
)


def _sign(left: Any, right: Any) -> int:
    return (left > right) - (left < right)


def _compare_quantity(left: Any, right: Any) -> int:
    # missing quantities ("no data" rows) sort below any measured value
    for value in (left, right):
        if value is not None and not isinstance(value, CpuQuantity | MemoryQuantity):
            raise TypeError(f"expected a quantity, got {type(value).__name__}")
    if left is None or right is None:
        return _sign(left is not None, right is not None)
    return _sign(left.value, right.value)


def _compare_integer(left: Any, right: Any) -> int:
    for value in (left, right):
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"expected an integer, got {type(value).__name__}")
    return _sign(left, right)


def _compare_string(left: Any, right: Any) -> int:
    for value in (left, right):
        if not isinstance(value, str):
            raise TypeError(f"expected a string, got {type(value).__name__}")
    return _sign(left, right)


_COMPARATORS: dict[FieldKind, Callable[[Any, Any], int]] = {
    FieldKind.QUANTITY: _compare_quantity,
    FieldKind.INTEGER: _compare_integer,
    FieldKind.STRING: _compare_string,
}


def field_names(fields: FieldTable) -> list[str]:
    """Return the sortable field names in declaration order."""
    return list(fields)


def validate_field(fields: FieldTable, field_name: str) -> FieldSpec[Any]:
    """Return the accessor for ``field_name`` or raise ``UnknownFieldError``."""
    try:
        return fields[field_name]
    except KeyError:
        raise UnknownFieldError(field_name, field_names(fields)) from None


def rank(
    records: Iterable[RecordT],
    field_name: str,
    fields: FieldTable,
    *,
    reverse: bool = False,
) -> list[RecordT]:
    """Return ``records`` stably sorted by ``field_name``.

    Ascending by default; ``reverse`` negates the comparator rather than
    reversing the output, so ties keep input order either way.
    """
    spec = validate_field(fields, field_name)
    compare = _COMPARATORS[spec.kind]
    getter = spec.getter
    sign = -1 if reverse else 1

    def _cmp(left: RecordT, right: RecordT) -> int:
        return sign * compare(getter(left), getter(right))

    return sorted(records, key=cmp_to_key(_cmp))
