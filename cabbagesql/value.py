"""Typed SQL values and their comparison rules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional


class DataType(IntEnum):
    """The data types a SQL value can carry."""

    NULL = 0x01
    BOOL = 0x02
    INT = 0x03
    FLOAT = 0x04
    STRING = 0x05

    def __str__(self) -> str:
        return _TYPE_NAMES[self]


_TYPE_NAMES = {
    DataType.NULL: "NULL",
    DataType.INT: "INT",
    DataType.STRING: "VARCHAR(100)",
    DataType.FLOAT: "FLOAT",
    DataType.BOOL: "BOOL",
}

_ORDERED_TYPES = (DataType.BOOL, DataType.STRING, DataType.INT, DataType.FLOAT)
_NUMERIC_TYPES = {DataType.INT, DataType.FLOAT}


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


@dataclass(frozen=True)
class Value:
    """A SQL value: a data type together with the Python object holding it."""

    type: DataType
    value: Any = None

    def __str__(self) -> str:
        if self.type == DataType.NULL:
            return "NULL"
        if self.type == DataType.FLOAT:
            return f"{float(self.value):.4f}"
        if self.type == DataType.BOOL:
            return "TRUE" if self.value is True else "FALSE"
        if self.type == DataType.INT:
            return str(int(self.value))
        if self.type == DataType.STRING:
            return str(self.value)
        return ""

    def compare(self, other: Value) -> Optional[int]:
        """Return -1, 0 or 1 ordering self against other, or None if incomparable.

        NULL sorts before every other value.
        """
        if self.type == DataType.NULL and other.type == DataType.NULL:
            return 0
        if self.type == DataType.NULL:
            return -1
        if other.type == DataType.NULL:
            return 1
        if self.type == other.type and self.type in _ORDERED_TYPES:
            return _cmp(self.value, other.value)
        if {self.type, other.type} == _NUMERIC_TYPES:
            return _cmp(float(self.value), float(other.value))
        return None


def decode_data_type(value: Any) -> DataType:
    """Return the data type matching a Python object; unknown objects are strings."""
    if value is None:
        return DataType.NULL
    if isinstance(value, bool):
        return DataType.BOOL
    if isinstance(value, int):
        return DataType.INT
    if isinstance(value, float):
        return DataType.FLOAT
    return DataType.STRING


def equal_value(first: Optional[Value], second: Optional[Value]) -> bool:
    """True when both values exist, share a type and render identically."""
    if first is None or second is None:
        return False
    if first.type != second.type:
        return False
    return str(first) == str(second)