"""
Core data types - EntityKind, ValueType, DCSValue, ValueSeries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
from typing import Iterable, Sequence, Union

import numpy as np

# Scalar payload carried by a single archived value
Scalar = Union[bool, int, float]


class EntityKind(IntEnum):
    """How a query names its entity (wire byte of REQUEST/MULTI_REQUEST)."""

    ALIAS = 0
    DP_NAME = 1


class ValueType(IntEnum):
    """Type of an archived value (wire byte of RESULT_SET).

    Each type carries the struct format of its on-wire value field.
    """

    BOOL = 1
    CHAR = 2
    INT = 3
    UINT = 4
    FLOAT = 5

    @property
    def struct_format(self) -> str:
        return _STRUCT_FORMATS[self]

    @property
    def size(self) -> int:
        return _SIZES[self]


_STRUCT_FORMATS = {
    ValueType.BOOL: "?",
    ValueType.CHAR: "b",
    ValueType.INT: "i",
    ValueType.UINT: "I",
    ValueType.FLOAT: "f",
}

_SIZES = {
    ValueType.BOOL: 1,
    ValueType.CHAR: 1,
    ValueType.INT: 4,
    ValueType.UINT: 4,
    ValueType.FLOAT: 4,
}


@dataclass(frozen=True)
class DCSValue:
    """A single archived measurement.

    Attributes:
        timestamp: UNIX seconds at which the value was archived
        value: The measurement (bool, int or float depending on value_type)
        value_type: Wire type the value was decoded from
    """

    timestamp: int
    value: Scalar
    value_type: ValueType = ValueType.FLOAT

    @property
    def time(self) -> datetime:
        """Timestamp as a timezone-aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)

    def __repr__(self) -> str:
        return f"DCSValue({self.timestamp}, {self.value!r}, {self.value_type.name})"


TimeSpec = Union[int, float, datetime]


def to_unix_seconds(t: TimeSpec) -> int:
    """Convert a query time to integral UNIX seconds.

    Naive datetimes are taken as UTC. Floats are truncated.
    """
    if isinstance(t, datetime):
        if t.tzinfo is None:
            t = t.replace(tzinfo=timezone.utc)
        return int(t.timestamp())
    if isinstance(t, bool) or not isinstance(t, (int, float)):
        raise TypeError(f"Expected int, float or datetime, got {type(t).__name__}")
    return int(t)


class ValueSeries:
    """Array view of an archived value sequence.

    Example usage:
        series = ValueSeries.from_values(result["ALIAS_1"])
        print(series.times)   # int64 UNIX seconds
        print(series.values)  # float64 measurements
    """

    def __init__(self, times: np.ndarray, values: np.ndarray):
        if len(times) != len(values):
            raise ValueError(f"times and values differ in length: {len(times)} != {len(values)}")
        self.times = np.asarray(times, dtype=np.int64)
        self.values = np.asarray(values, dtype=np.float64)

    @classmethod
    def from_values(cls, values: Iterable[DCSValue]) -> "ValueSeries":
        records: Sequence[DCSValue] = list(values)
        times = np.fromiter((v.timestamp for v in records), dtype=np.int64, count=len(records))
        data = np.fromiter((float(v.value) for v in records), dtype=np.float64, count=len(records))
        return cls(times=times, values=data)

    def __len__(self) -> int:
        return len(self.times)

    def __repr__(self) -> str:
        if len(self) == 0:
            return "ValueSeries(empty)"
        return f"ValueSeries({len(self)} values, {self.times[0]}..{self.times[-1]})"
