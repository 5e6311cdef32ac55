"""Executors that filter, project, page and sort query results."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import List, Optional, Sequence, Tuple

from .expressions import Expression, Field
from .nodes import DirectionExpr, ExprAs
from .results import QueryResultSet, ResultSet
from .schema import Transaction
from .sources import ExecutionError, Executor
from .value import DataType, Value


def _query(source: Executor, txn: Transaction, name: str) -> QueryResultSet:
    result = source.execute(txn)
    if not isinstance(result, QueryResultSet):
        raise ExecutionError(f"{name}: invalid source result set")
    return result


@dataclass
class FilterExec(Executor):
    """Keeps the rows for which the predicate evaluates to TRUE."""

    source: Executor
    predicate: Optional[Expression] = None

    def execute(self, txn: Transaction) -> ResultSet:
        result = _query(self.source, txn, "FilterExec")
        if self.predicate is None:
            raise ExecutionError("FilterExec: no predicate")
        rows = []
        for row in result.rows:
            value = self.predicate.evaluate(row)
            if value is not None and value.type == DataType.BOOL and value.value is True:
                rows.append(row)
        return QueryResultSet(columns=result.columns, rows=rows)


@dataclass
class ProjectionExec(Executor):
    """Computes output columns from each source row."""

    source: Executor
    expressions: List[ExprAs] = field(default_factory=list)

    def _column_name(self, item: ExprAs, columns: Sequence[str]) -> str:
        expr = item.expr
        if isinstance(expr, Field) and not item.alias and expr.index < len(columns):
            return columns[expr.index]
        return item.alias

    def execute(self, txn: Transaction) -> ResultSet:
        result = _query(self.source, txn, "ProjectionExec")
        columns = [self._column_name(item, result.columns) for item in self.expressions]
        rows = [
            [None if item.expr is None else item.expr.evaluate(row) for item in self.expressions]
            for row in result.rows
        ]
        return QueryResultSet(columns=columns, rows=rows)


@dataclass
class LimitExec(Executor):
    """Keeps at most the first limit rows."""

    source: Executor
    limit: int

    def execute(self, txn: Transaction) -> ResultSet:
        result = _query(self.source, txn, "LimitExec")
        return QueryResultSet(columns=result.columns, rows=list(result.rows[: self.limit]))


@dataclass
class OffsetExec(Executor):
    """Skips the first offset rows."""

    source: Executor
    offset: int

    def execute(self, txn: Transaction) -> ResultSet:
        result = _query(self.source, txn, "OffsetExec")
        return QueryResultSet(columns=result.columns, rows=list(result.rows[self.offset :]))


_Item = Tuple[List[Optional[Value]], List[Optional[Value]]]


@dataclass
class OrderExec(Executor):
    """Sorts rows by a list of expressions, each ascending or descending.

    Keys that cannot be compared are skipped in favour of the next one.
    """

    source: Executor
    orders: List[DirectionExpr] = field(default_factory=list)

    def _compare(self, first: _Item, second: _Item) -> int:
        for order, a, b in zip(self.orders, first[1], second[1]):
            if a is None or b is None:
                continue
            result = a.compare(b)
            if not result:
                continue
            return -result if order.desc else result
        return 0

    def execute(self, txn: Transaction) -> ResultSet:
        result = _query(self.source, txn, "OrderExec")
        items: List[_Item] = [
            (
                row,
                [None if order.expr is None else order.expr.evaluate(row) for order in self.orders],
            )
            for row in result.rows
        ]
        items.sort(key=cmp_to_key(self._compare))
        return QueryResultSet(columns=result.columns, rows=[row for row, _ in items])