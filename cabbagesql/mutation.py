"""Executors that insert, update and delete rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from .expressions import Expression
from .nodes import UpdateExpr
from .results import (
    CreateResultSet,
    DeleteResultSet,
    QueryResultSet,
    ResultSet,
    UpdateResultSet,
)
from .schema import Table, Transaction
from .sources import ExecutionError, Executor
from .value import Value

Row = List[Optional[Value]]


def pad_row(table: Table, row: Sequence[Optional[Value]]) -> Row:
    """Extend a row with the defaults of the table columns it does not cover."""
    if len(row) > len(table.columns):
        raise ExecutionError(
            f"Row has {len(row)} values but table {table.name} has "
            f"{len(table.columns)} columns"
        )
    padded = list(row)
    padded.extend(
        column.default
        for column in table.columns[len(row):]
        if column.default is not None
    )
    return padded


def make_row(
    table: Table, columns: Sequence[str], values: Sequence[Optional[Value]]
) -> Row:
    """Arrange named values in table column order, filling in defaults."""
    if len(columns) != len(values):
        raise ExecutionError("Column and value counts do not match")
    inputs: Dict[str, Optional[Value]] = {}
    for name, value in zip(columns, values):
        table.get_column(name)
        inputs[name] = value
    row: Row = []
    for column in table.columns:
        if column.name in inputs:
            row.append(inputs[column.name])
        elif column.default is not None:
            row.append(column.default)
    return row


def _query(source: Executor, txn: Transaction, name: str) -> QueryResultSet:
    result = source.execute(txn)
    if not isinstance(result, QueryResultSet):
        raise ExecutionError(f"{name}: invalid source result set")
    return result


@dataclass
class InsertExec(Executor):
    """Inserts rows built from constant expressions."""

    table: str
    columns: List[str] = field(default_factory=list)
    rows: List[List[Optional[Expression]]] = field(default_factory=list)

    def execute(self, txn: Transaction) -> ResultSet:
        table = txn.must_read_table(self.table)
        count = 0
        for expressions in self.rows:
            values = [None if expr is None else expr.evaluate([]) for expr in expressions]
            if self.columns:
                row = make_row(table, self.columns, values)
            else:
                row = pad_row(table, values)
            txn.create(self.table, row)
            count += 1
        return CreateResultSet(count=count)


@dataclass
class UpdateExec(Executor):
    """Applies assignments to each row produced by its source, once per key."""

    table: str
    source: Executor
    expressions: List[UpdateExpr] = field(default_factory=list)

    def execute(self, txn: Transaction) -> ResultSet:
        result = _query(self.source, txn, "UpdateExec")
        table = txn.must_read_table(self.table)
        updated: Set[Optional[Value]] = set()
        for source_row in result.rows:
            key = table.row_key(source_row)
            if key in updated:
                continue
            row = list(source_row)
            for assignment in self.expressions:
                expr = assignment.expr
                row[assignment.index] = None if expr is None else expr.evaluate(row)
            txn.update(table.name, key, row)
            updated.add(key)
        return UpdateResultSet(count=len(updated))


@dataclass
class DeleteExec(Executor):
    """Deletes every row produced by its source."""

    table: str
    source: Executor

    def execute(self, txn: Transaction) -> ResultSet:
        table = txn.must_read_table(self.table)
        result = _query(self.source, txn, "DeleteExec")
        count = 0
        for row in result.rows:
            txn.delete(table.name, table.row_key(row))
            count += 1
        return DeleteResultSet(count=count)