"""
Batched multi-entity queries.

A name list is cut into consecutive sub-batches of at most ``batch_size``
names. Each sub-batch runs on its own connection: connect, send one request,
read RESULT_SETs until the end-of-stream sentinel, close. Every RESULT_SET
carries an owner index relative to the start of its sub-batch, which is
mapped back to the name it belongs to and merged into a ResultMap.

Any failure aborts the whole call and discards what was collected so far.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Iterator, Optional, Sequence

from dcsclient.types import DCSValue, EntityKind, ValueSeries

from .errors import ErrorCode, error_string

logger = logging.getLogger(__name__)


class ResultMap(Mapping):
    """Query name -> archived values, in arrival order.

    Values for a name are only ever appended: result sets that arrive split
    across several messages (or several sub-batches) are concatenated, never
    reordered or deduplicated.
    """

    def __init__(self):
        self._data: dict[str, list[DCSValue]] = {}

    def merge(self, name: str, values: Sequence[DCSValue]) -> None:
        """Append ``values`` to the entry for ``name``, creating it if absent."""
        target = self._data.get(name)
        if target is None:
            self._data[name] = list(values)
        else:
            target.extend(values)

    def total_values(self) -> int:
        """Number of values across all names."""
        return sum(len(v) for v in self._data.values())

    def counts(self) -> dict[str, int]:
        return {name: len(values) for name, values in self._data.items()}

    def series(self, name: str) -> ValueSeries:
        """numpy view of the values for ``name``."""
        return ValueSeries.from_values(self._data[name])

    def to_dict(self) -> dict[str, list[DCSValue]]:
        """Shallow copy as a plain dict of lists."""
        return {name: list(values) for name, values in self._data.items()}

    def __getitem__(self, name: str) -> list[DCSValue]:
        return self._data[name]

    def __iter__(self):
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"ResultMap({len(self)} names, {self.total_values()} values)"


class BatchDriver(ABC):
    """Per-connection operations the batch loop needs from a protocol driver."""

    @abstractmethod
    def connect(self) -> bool:
        """Open a fresh connection. Returns success."""

    @abstractmethod
    def close(self) -> None:
        """Close the current connection (idempotent)."""

    @abstractmethod
    def send_request(self, kind: EntityKind, names: Sequence[str], start_time: int, end_time: int) -> int:
        """Send one query for ``names``. Returns bytes sent or a negative ErrorCode."""

    @abstractmethod
    def receive_value_set(self, target: list) -> tuple[int, int]:
        """Receive one RESULT_SET into ``target``.

        Returns (status, owner_index). status is the number of values
        appended (0 for the end-of-stream sentinel, whose owner_index is
        negative) or a negative ErrorCode.
        """


def clamp_end_index(end_index: Optional[int], length: int) -> int:
    """Unset, negative or out-of-range end indices mean 'to the end of the list'."""
    if end_index is None or end_index < 0 or end_index > length:
        return length
    return end_index


def split_batches(start_index: int, end_index: int, batch_size: int) -> Iterator[tuple[int, int]]:
    """Yield consecutive half-open (begin, end) ranges of at most batch_size entries."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    for begin in range(start_index, end_index, batch_size):
        yield begin, min(begin + batch_size, end_index)


def collect_batched(
    driver: BatchDriver,
    kind: EntityKind,
    names: Sequence[str],
    start_time: int,
    end_time: int,
    batch_size: int,
    start_index: int = 0,
    end_index: Optional[int] = None,
) -> tuple[int, Optional[ResultMap]]:
    """Run a multi-entity query over names[start_index:end_index].

    Returns:
        (total_values, ResultMap) on success, or (ErrorCode, None) on the
        first failure of any sub-batch.
    """
    end_index = clamp_end_index(end_index, len(names))
    if start_index < 0:
        logger.error(f"Invalid start index {start_index}")
        return ErrorCode.INVALID_PARAMETER, None

    result = ResultMap()

    for begin, end in split_batches(start_index, end_index, batch_size):
        if not driver.connect():
            logger.error("Not connected!")
            return ErrorCode.BAD_STATE, None

        status = _collect_subset(driver, kind, names, begin, end, start_time, end_time, result)
        driver.close()

        if status < 0:
            logger.error(f"Can't get values for entries {begin}..{end - 1}: {error_string(status)}")
            return status, None

        example = names[begin]
        collected = len(result.get(example, ()))
        logger.info(
            f"Retrieved entries {begin}..{end - 1} (total {start_index}..{end_index - 1}); "
            f"e.g. {example} has {collected} values collected"
        )

    return result.total_values(), result


def _collect_subset(
    driver: BatchDriver,
    kind: EntityKind,
    names: Sequence[str],
    begin: int,
    end: int,
    start_time: int,
    end_time: int,
    result: ResultMap,
) -> int:
    """One sub-batch on an open connection. Returns values received or an ErrorCode."""
    status = driver.send_request(kind, names[begin:end], start_time, end_time)
    if status < 0:
        logger.error(f"Can't send request message! Reason: {error_string(status)}")
        return status

    received = 0
    while True:
        values: list[DCSValue] = []
        status, owner_index = driver.receive_value_set(values)
        if status < 0:
            return status
        if owner_index < 0:
            return received

        position = begin + owner_index
        if position >= end:
            logger.error(f"Owner index {owner_index} outside sub-batch {begin}..{end - 1}")
            return ErrorCode.BAD_MESSAGE

        result.merge(names[position], values)
        received += status
