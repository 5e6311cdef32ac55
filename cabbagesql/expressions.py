"""Expression trees evaluated against rows of values."""

from __future__ import annotations

import logging
import math
import operator
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .value import DataType, Value

log = logging.getLogger(__name__)

Row = Optional[Sequence[Value]]

_NULL = Value(DataType.NULL)
_TRUE = Value(DataType.BOOL, True)
_FALSE = Value(DataType.BOOL, False)
_NON_NUMERIC = {DataType.STRING, DataType.BOOL}
_NUMERIC = {DataType.INT, DataType.FLOAT}


def _boolean(flag: bool) -> Value:
    return _TRUE if flag else _FALSE


class Expression(ABC):
    """An expression that yields a value for a row, or None when it cannot."""

    __slots__ = ()

    @abstractmethod
    def evaluate(self, row: Row) -> Optional[Value]:
        """Evaluate the expression against a row."""


@dataclass(frozen=True)
class ColumnField:
    """The table and column a field refers to."""

    table_name: str = ""
    column_name: str = ""


@dataclass(frozen=True)
class Constant(Expression):
    """A literal value."""

    value: Value

    def evaluate(self, row: Row) -> Optional[Value]:
        return self.value


@dataclass(frozen=True)
class Field(Expression):
    """A reference to a column of the row by position."""

    index: int
    column_field: Optional[ColumnField] = None

    def evaluate(self, row: Row) -> Optional[Value]:
        if not row or self.index >= len(row):
            return None
        return row[self.index]


@dataclass(frozen=True)
class BinaryExpression(Expression, ABC):
    """An expression with a left and a right operand."""

    left: Optional[Expression] = None
    right: Optional[Expression] = None

    def _operands(self, row: Row) -> Optional[tuple[Value, Value]]:
        name = type(self).__name__
        if self.left is None or self.right is None:
            log.info("%s evaluate: missing operand", name)
            return None
        lhs = self.left.evaluate(row)
        rhs = self.right.evaluate(row)
        if lhs is None or rhs is None:
            log.info("%s evaluate: operand produced no value", name)
            return None
        return lhs, rhs


@dataclass(frozen=True)
class UnaryExpression(Expression, ABC):
    """An expression with a single operand."""

    operand: Optional[Expression] = None

    def _operand(self, row: Row) -> Optional[Value]:
        name = type(self).__name__
        if self.operand is None:
            log.info("%s evaluate: missing operand", name)
            return None
        value = self.operand.evaluate(row)
        if value is None:
            log.info("%s evaluate: operand produced no value", name)
        return value


def _numeric(
    lhs: Value,
    rhs: Value,
    int_op: Optional[Callable[[int, int], Optional[int]]],
    float_op: Optional[Callable[[float, float], Optional[float]]],
) -> Optional[Value]:
    if lhs.type in _NON_NUMERIC or rhs.type in _NON_NUMERIC:
        return None
    if lhs.type == DataType.NULL or rhs.type == DataType.NULL:
        return _NULL
    if lhs.type == DataType.INT and rhs.type == DataType.INT and int_op is not None:
        result = int_op(lhs.value, rhs.value)
        return None if result is None else Value(DataType.INT, result)
    if lhs.type in _NUMERIC and rhs.type in _NUMERIC and float_op is not None:
        result = float_op(float(lhs.value), float(rhs.value))
        return None if result is None else Value(DataType.FLOAT, result)
    return None


def _ordering(lhs: Value, rhs: Value, op: Callable[[object, object], bool]) -> Optional[Value]:
    if lhs.type == DataType.NULL or rhs.type == DataType.NULL:
        return _NULL
    if lhs.type == rhs.type:
        if lhs.type in _NUMERIC:
            return _boolean(op(lhs.value, rhs.value))
        if lhs.type == DataType.STRING:
            return _FALSE
        return None
    if {lhs.type, rhs.type} == _NUMERIC:
        return _boolean(op(float(lhs.value), float(rhs.value)))
    return None


def _trunc_div(a: int, b: int) -> Optional[int]:
    if b == 0:
        return None
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def _trunc_mod(a: int, b: int) -> Optional[int]:
    quotient = _trunc_div(a, b)
    return None if quotient is None else a - b * quotient


def _float_div(a: float, b: float) -> Optional[float]:
    return None if b == 0 else a / b


def _power(base: float, exponent: float) -> float:
    try:
        return math.pow(base, exponent)
    except OverflowError:
        return math.inf
    except ValueError:
        return math.inf if base == 0 else math.nan


@dataclass(frozen=True)
class And(BinaryExpression):
    """Logical AND with SQL three-valued semantics."""

    def evaluate(self, row: Row) -> Optional[Value]:
        operands = self._operands(row)
        if operands is None:
            return None
        lhs, rhs = operands
        if lhs.type == DataType.BOOL and rhs.type == DataType.BOOL:
            return _boolean(lhs.value and rhs.value)
        if {lhs.type, rhs.type} == {DataType.BOOL, DataType.NULL}:
            known = lhs if lhs.type == DataType.BOOL else rhs
            return _NULL if known.value else _FALSE
        if lhs.type == DataType.NULL and rhs.type == DataType.NULL:
            return _NULL
        return None


@dataclass(frozen=True)
class Or(BinaryExpression):
    """Logical OR with SQL three-valued semantics."""

    def evaluate(self, row: Row) -> Optional[Value]:
        operands = self._operands(row)
        if operands is None:
            return None
        lhs, rhs = operands
        if lhs.type == DataType.BOOL and rhs.type == DataType.BOOL:
            return _boolean(lhs.value or rhs.value)
        if {lhs.type, rhs.type} == {DataType.BOOL, DataType.NULL}:
            known = lhs if lhs.type == DataType.BOOL else rhs
            return _TRUE if known.value else _NULL
        if lhs.type == DataType.NULL and rhs.type == DataType.NULL:
            return _NULL
        return None


@dataclass(frozen=True)
class Not(UnaryExpression):
    """Logical negation; NULL stays NULL."""

    def evaluate(self, row: Row) -> Optional[Value]:
        value = self._operand(row)
        if value is None:
            return None
        if value.type == DataType.BOOL:
            return _boolean(not value.value)
        if value.type == DataType.NULL:
            return _NULL
        return None


@dataclass(frozen=True)
class Equal(BinaryExpression):
    """Equality; NULL or mismatched types give NULL."""

    def evaluate(self, row: Row) -> Optional[Value]:
        operands = self._operands(row)
        if operands is None:
            return None
        lhs, rhs = operands
        if lhs.type == DataType.NULL or rhs.type == DataType.NULL:
            return _NULL
        if lhs.type == rhs.type:
            return _boolean(lhs.value == rhs.value)
        return _NULL


@dataclass(frozen=True)
class GreaterThan(BinaryExpression):
    """Numeric greater-than; strings never compare greater."""

    def evaluate(self, row: Row) -> Optional[Value]:
        operands = self._operands(row)
        if operands is None:
            return None
        return _ordering(*operands, operator.gt)


@dataclass(frozen=True)
class LessThan(BinaryExpression):
    """Numeric less-than; strings never compare less."""

    def evaluate(self, row: Row) -> Optional[Value]:
        operands = self._operands(row)
        if operands is None:
            return None
        return _ordering(*operands, operator.lt)


@dataclass(frozen=True)
class IsNull(UnaryExpression):
    """True when the operand is NULL."""

    def evaluate(self, row: Row) -> Optional[Value]:
        value = self._operand(row)
        if value is None:
            return None
        return _boolean(value.type == DataType.NULL)


@dataclass(frozen=True)
class Add(BinaryExpression):
    """Numeric addition."""

    def evaluate(self, row: Row) -> Optional[Value]:
        operands = self._operands(row)
        if operands is None:
            return None
        return _numeric(*operands, operator.add, operator.add)


@dataclass(frozen=True)
class Subtract(BinaryExpression):
    """Numeric subtraction."""

    def evaluate(self, row: Row) -> Optional[Value]:
        operands = self._operands(row)
        if operands is None:
            return None
        return _numeric(*operands, operator.sub, operator.sub)


@dataclass(frozen=True)
class Multiply(BinaryExpression):
    """Numeric multiplication."""

    def evaluate(self, row: Row) -> Optional[Value]:
        operands = self._operands(row)
        if operands is None:
            return None
        return _numeric(*operands, operator.mul, operator.mul)


@dataclass(frozen=True)
class Divide(BinaryExpression):
    """Numeric division; integers truncate toward zero, division by zero gives None."""

    def evaluate(self, row: Row) -> Optional[Value]:
        operands = self._operands(row)
        if operands is None:
            return None
        return _numeric(*operands, _trunc_div, _float_div)


@dataclass(frozen=True)
class Modulo(BinaryExpression):
    """Integer remainder with the sign of the dividend."""

    def evaluate(self, row: Row) -> Optional[Value]:
        operands = self._operands(row)
        if operands is None:
            return None
        return _numeric(*operands, _trunc_mod, None)


@dataclass(frozen=True)
class Exponentiate(BinaryExpression):
    """Raise the left operand to the right; the result is always a float."""

    def evaluate(self, row: Row) -> Optional[Value]:
        operands = self._operands(row)
        if operands is None:
            return None
        return _numeric(*operands, None, _power)


@dataclass(frozen=True)
class Assert(UnaryExpression):
    """Unary plus: passes numbers and NULL through unchanged."""

    def evaluate(self, row: Row) -> Optional[Value]:
        value = self._operand(row)
        if value is None:
            return None
        if value.type in _NUMERIC:
            return Value(value.type, value.value)
        if value.type == DataType.NULL:
            return _NULL
        return None


@dataclass(frozen=True)
class Negate(UnaryExpression):
    """Unary minus."""

    def evaluate(self, row: Row) -> Optional[Value]:
        value = self._operand(row)
        if value is None:
            return None
        if value.type in _NUMERIC:
            return Value(value.type, -value.value)
        if value.type == DataType.NULL:
            return _NULL
        return None


@dataclass(frozen=True)
class Factorial(UnaryExpression):
    """Factorial of a non-negative integer."""

    def evaluate(self, row: Row) -> Optional[Value]:
        value = self._operand(row)
        if value is None:
            return None
        if value.type == DataType.NULL:
            return _NULL
        if value.type == DataType.INT and value.value >= 0:
            return Value(DataType.INT, math.factorial(value.value))
        return None


def _like_pattern(pattern: str) -> str:
    return "".join(
        ".*" if char == "%" else "." if char == "_" else re.escape(char)
        for char in pattern
    )


@dataclass(frozen=True)
class Like(BinaryExpression):
    """SQL LIKE: '%' matches any run of characters, '_' any single one."""

    def evaluate(self, row: Row) -> Optional[Value]:
        operands = self._operands(row)
        if operands is None:
            return None
        lhs, rhs = operands
        if {lhs.type, rhs.type} == {DataType.NULL, DataType.STRING}:
            return _NULL
        if lhs.type == DataType.STRING and rhs.type == DataType.STRING:
            matched = re.fullmatch(_like_pattern(rhs.value), lhs.value)
            return _boolean(matched is not None)
        return None