"""Executors that read tables or change the schema."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .expressions import Expression
from .results import CreateTableResultSet, DropTableResultSet, QueryResultSet, ResultSet
from .schema import Table, Transaction
from .value import Value


class ExecutionError(Exception):
    """Raised when a plan cannot be executed."""


class Executor(ABC):
    """A runnable step of a query plan."""

    @abstractmethod
    def execute(self, txn: Transaction) -> ResultSet:
        """Run against a transaction and return the result."""


def _column_names(table: Table) -> List[str]:
    return [column.name for column in table.columns]


@dataclass
class CreateTableExec(Executor):
    """Creates a table."""

    table: Table

    def execute(self, txn: Transaction) -> ResultSet:
        txn.create_table(self.table)
        return CreateTableResultSet(name=self.table.name)


@dataclass
class DropTableExec(Executor):
    """Drops a table."""

    table: str

    def execute(self, txn: Transaction) -> ResultSet:
        txn.delete_table(self.table)
        return DropTableResultSet(name=self.table)


@dataclass
class ScanExec(Executor):
    """Reads every row of a table that passes the filter."""

    table: str
    filter: Optional[Expression] = None

    def execute(self, txn: Transaction) -> ResultSet:
        table = txn.must_read_table(self.table)
        rows = txn.scan(self.table, self.filter)
        return QueryResultSet(columns=_column_names(table), rows=list(rows or []))


@dataclass
class KeyLookupExec(Executor):
    """Reads rows by primary key, in the order the keys are given."""

    table: str
    keys: List[Value] = field(default_factory=list)

    def execute(self, txn: Transaction) -> ResultSet:
        table = txn.must_read_table(self.table)
        rows = [txn.read(self.table, key) for key in self.keys]
        return QueryResultSet(columns=_column_names(table), rows=rows)


@dataclass
class IndexLookupExec(Executor):
    """Reads the rows whose indexed column holds one of the given values."""

    table: str
    column: str
    values: List[Value] = field(default_factory=list)

    def execute(self, txn: Transaction) -> ResultSet:
        table = txn.must_read_table(self.table)
        keys: Dict[Value, None] = {}
        for value in self.values:
            keys.update(dict.fromkeys(txn.read_index(self.table, self.column, value)))
        rows = [txn.read(self.table, key) for key in keys]
        return QueryResultSet(columns=_column_names(table), rows=rows)


@dataclass
class NothingExec(Executor):
    """Produces one empty row with no columns."""

    def execute(self, txn: Transaction) -> ResultSet:
        return QueryResultSet(columns=[], rows=[[]])