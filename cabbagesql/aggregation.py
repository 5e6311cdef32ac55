"""Aggregate functions and the executor that groups and aggregates rows."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .nodes import Aggregate
from .results import QueryResultSet, ResultSet
from .schema import Transaction
from .sources import ExecutionError, Executor
from .value import DataType, Value

log = logging.getLogger(__name__)

_NUMERIC = (DataType.INT, DataType.FLOAT)


class Accumulator(ABC):
    """Folds a stream of values into one aggregate value."""

    @abstractmethod
    def accumulate(self, value: Optional[Value]) -> None:
        """Feed one value into the accumulator."""

    @abstractmethod
    def aggregate(self) -> Optional[Value]:
        """Return the aggregate of everything fed so far."""


@dataclass
class CountAcc(Accumulator):
    """Counts values that are present and not NULL."""

    count: int = 0

    def accumulate(self, value: Optional[Value]) -> None:
        if value is None or value.type == DataType.NULL:
            return
        self.count += 1

    def aggregate(self) -> Optional[Value]:
        return Value(DataType.INT, self.count)


@dataclass
class SumAcc(Accumulator):
    """Sums numbers; the first value fixes the type of the sum."""

    total: Optional[Value] = None

    def accumulate(self, value: Optional[Value]) -> None:
        if value is None:
            return
        if self.total is None:
            self.total = Value(value.type, value.value)
            return
        if self.total.type in _NUMERIC and value.type == self.total.type:
            self.total = Value(self.total.type, self.total.value + value.value)

    def aggregate(self) -> Optional[Value]:
        return self.total


@dataclass
class AverageAcc(Accumulator):
    """Average of numbers; integer averages truncate toward zero."""

    count: CountAcc = field(default_factory=CountAcc)
    total: SumAcc = field(default_factory=SumAcc)

    def accumulate(self, value: Optional[Value]) -> None:
        self.count.accumulate(value)
        self.total.accumulate(value)

    def aggregate(self) -> Optional[Value]:
        total = self.total.aggregate()
        count = self.count.aggregate().value
        if total is None or count == 0:
            return Value(DataType.NULL)
        if total.type == DataType.INT:
            quotient = abs(total.value) // count
            return Value(DataType.INT, quotient if total.value >= 0 else -quotient)
        if total.type == DataType.FLOAT:
            return Value(DataType.FLOAT, total.value / count)
        return Value(DataType.NULL)


class _ExtremeAcc(Accumulator):
    """Keeps the value that wins a comparison; a type change resets it."""

    def __init__(self) -> None:
        self.current: Optional[Value] = None

    @staticmethod
    @abstractmethod
    def _better(candidate: object, current: object) -> bool:
        """True when candidate should replace current."""

    def accumulate(self, value: Optional[Value]) -> None:
        if value is None:
            return
        if self.current is None:
            self.current = Value(value.type, value.value)
            return
        if self.current.type != value.type:
            self.current = None
            return
        if self.current.type in _NUMERIC and self._better(value.value, self.current.value):
            self.current = value

    def aggregate(self) -> Optional[Value]:
        return self.current


class MaxAcc(_ExtremeAcc):
    """Largest number seen."""

    @staticmethod
    def _better(candidate: object, current: object) -> bool:
        return candidate > current  # type: ignore[operator]

    def accumulate(self, value: Optional[Value]) -> None:
        super().accumulate(value)

    def aggregate(self) -> Optional[Value]:
        return super().aggregate()


class MinAcc(_ExtremeAcc):
    """Smallest number seen."""

    @staticmethod
    def _better(candidate: object, current: object) -> bool:
        return candidate < current  # type: ignore[operator]

    def accumulate(self, value: Optional[Value]) -> None:
        super().accumulate(value)

    def aggregate(self) -> Optional[Value]:
        return super().aggregate()


_ACCUMULATORS = {
    Aggregate.AVERAGE: AverageAcc,
    Aggregate.MAX: MaxAcc,
    Aggregate.MIN: MinAcc,
    Aggregate.COUNT: CountAcc,
    Aggregate.SUM: SumAcc,
}


def new_accumulator(aggregate: Aggregate) -> Accumulator:
    """Return a fresh accumulator for an aggregate function."""
    try:
        return _ACCUMULATORS[aggregate]()
    except KeyError:
        raise ValueError(f"unknown aggregate: {aggregate!r}") from None


def encode_key(value: Optional[Value]) -> str:
    """Encode a value as a type-tagged, '|'-terminated string."""
    if value is None:
        log.info("cannot encode a missing value")
        return ""
    if value.type == DataType.NULL:
        return "nNULL|"
    if value.type == DataType.FLOAT:
        return f"f{float(value.value):.4f}|"
    if value.type == DataType.BOOL:
        return "bTRUE|" if value.value else "bFALSE|"
    if value.type == DataType.INT:
        return f"i{int(value.value)}|"
    if value.type == DataType.STRING:
        text = str(value.value)
        return f"s{len(text.encode('utf-8'))}:{text}|"
    log.info("unsupported type: %s", value.type)
    return ""


def encode_group_key(keys: Sequence[Optional[Value]]) -> str:
    """Encode a sequence of values as one string."""
    return "".join(encode_key(key) for key in keys)


def _decode_part(part: str) -> Value:
    prefix, data = part[0], part[1:]
    if prefix == "n":
        if data != "NULL":
            raise ValueError(f"invalid null encoding: {part}")
        return Value(DataType.NULL)
    if prefix == "f":
        return Value(DataType.FLOAT, float(data))
    if prefix == "b":
        if data == "TRUE":
            return Value(DataType.BOOL, True)
        if data == "FALSE":
            return Value(DataType.BOOL, False)
        raise ValueError(f"invalid bool value: {data}")
    if prefix == "i":
        return Value(DataType.INT, int(data))
    if prefix == "s":
        length_text, sep, text = data.partition(":")
        if not sep:
            raise ValueError(f"invalid string format: {data}")
        length = int(length_text)
        actual = len(text.encode("utf-8"))
        if actual != length:
            raise ValueError(f"length mismatch: declared {length}, actual {actual}")
        return Value(DataType.STRING, text)
    raise ValueError(f"unknown prefix: {prefix}")


def decode_group_key(encoded: str) -> List[Value]:
    """Decode a string made by encode_group_key; raises ValueError if malformed."""
    return [_decode_part(part) for part in encoded.split("|") if part]


@dataclass
class AggregationExec(Executor):
    """Aggregates the leading columns of its source, grouped by the remaining ones."""

    source: Executor
    aggregates: List[Aggregate] = field(default_factory=list)

    def _fresh(self) -> List[Accumulator]:
        return [new_accumulator(aggregate) for aggregate in self.aggregates]

    def execute(self, txn: Transaction) -> ResultSet:
        result = self.source.execute(txn)
        if not isinstance(result, QueryResultSet):
            raise ExecutionError("AggregationExec: invalid source result set")

        count = len(self.aggregates)
        groups: Dict[str, Tuple[List[Optional[Value]], List[Accumulator]]] = {}
        if not result.rows and count > 0:
            groups[""] = ([], self._fresh())
        else:
            for row in result.rows:
                if len(row) < count:
                    raise ExecutionError("column len err")
                key_values = list(row[count:])
                key = encode_group_key(key_values)
                entry = groups.get(key)
                if entry is None:
                    entry = groups[key] = (key_values, self._fresh())
                for accumulator, value in zip(entry[1], row[:count]):
                    accumulator.accumulate(value)

        columns = [
            f"{self.aggregates[position]}({name})" if position < count else name
            for position, name in enumerate(result.columns)
        ]
        rows = [
            [accumulator.aggregate() for accumulator in accumulators] + key_values
            for key_values, accumulators in groups.values()
        ]
        return QueryResultSet(columns=columns, rows=rows)