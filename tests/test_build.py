import pytest

from cabbagesql.aggregation import AggregationExec
from cabbagesql.build import build_executor
from cabbagesql.expressions import Constant, Equal, Field
from cabbagesql.joins import HashJoinExec
from cabbagesql.nodes import (
    Aggregate,
    AggregationNode,
    CoverIndexNode,
    CreateTableNode,
    DropTableNode,
    ExprAs,
    FilterNode,
    HashJoinNode,
    InsertNode,
    LimitNode,
    NothingNode,
    ProjectionNode,
    ScanNode,
)
from cabbagesql.schema import Column, Table, Transaction
from cabbagesql.sources import ExecutionError, ScanExec
from cabbagesql.value import DataType, Value


class MemoryTxn(Transaction):
    def __init__(self, *tables):
        self.tables = {table.name: table for table in tables}
        self.rows = {table.name: {} for table in tables}

    def version(self):
        return 1

    def read_only(self):
        return False

    def commit(self):
        return True

    def rollback(self):
        return True

    def create_table(self, table):
        self.tables[table.name] = table
        self.rows[table.name] = {}

    def delete_table(self, table_name):
        self.tables.pop(table_name)
        self.rows.pop(table_name)

    def read_table(self, table_name):
        return self.tables.get(table_name)

    def scan_tables(self):
        return list(self.tables.values())

    def table_references(self, table_name, with_self):
        return []

    def create(self, table, row):
        self.rows[table][self.tables[table].row_key(row)] = list(row)

    def delete(self, table, id):
        del self.rows[table][id]

    def read(self, table, id):
        return self.rows[table].get(id, [])

    def read_index(self, table, column, value):
        schema = self.tables[table]
        position = schema.get_column_index(column)
        return {schema.row_key(r) for r in self.rows[table].values() if r[position] == value}

    def scan(self, table, filter):
        rows = list(self.rows[table].values())
        if filter is None:
            return rows
        return [
            r
            for r in rows
            if (v := filter.evaluate(r)) is not None
            and v.type == DataType.BOOL
            and v.value is True
        ]

    def scan_index(self, table, column):
        return []

    def update(self, table, id, row):
        self.rows[table].pop(id)
        self.create(table, row)


def intv(number):
    return Value(DataType.INT, number)


def strv(text):
    return Value(DataType.STRING, text)


def people():
    return Table(
        "people",
        [
            Column("id", DataType.INT, primary_key=True, nullable=False, unique=True),
            Column("name", DataType.STRING),
        ],
    )


def seeded():
    txn = MemoryTxn(people())
    txn.create("people", [intv(1), strv("ann")])
    txn.create("people", [intv(2), strv("bob")])
    return txn


def test_scan_node_becomes_scan_exec():
    executor = build_executor(ScanNode("people"))
    assert isinstance(executor, ScanExec)
    assert executor.table == "people"


def test_hash_join_uses_field_positions():
    node = HashJoinNode(ScanNode("a"), Field(1, None), ScanNode("b"), Field(0, None), True)
    executor = build_executor(node)
    assert isinstance(executor, HashJoinExec)
    assert (executor.left_field, executor.right_field, executor.outer) == (1, 0, True)


def test_filter_over_scan_executes():
    node = FilterNode(ScanNode("people"), Equal(Field(0, None), Constant(intv(2))))
    result = build_executor(node).execute(seeded())
    assert result.rows == [[intv(2), strv("bob")]]


def test_limit_over_projection_executes():
    node = LimitNode(ProjectionNode(ScanNode("people"), [ExprAs(Field(1, None))]), 1)
    result = build_executor(node).execute(seeded())
    assert result.columns == ["name"]
    assert result.rows == [[strv("ann")]]


def test_aggregation_counts_rows():
    node = AggregationNode(
        ProjectionNode(ScanNode("people"), [ExprAs(Field(1, None))]), [Aggregate.COUNT]
    )
    executor = build_executor(node)
    assert isinstance(executor, AggregationExec)
    assert executor.execute(seeded()).rows == [[intv(2)]]


def test_insert_node_executes():
    txn = MemoryTxn(people())
    node = InsertNode("people", [], [[Constant(intv(5)), Constant(strv("eve"))]])
    result = build_executor(node).execute(txn)
    assert result.count == 1
    assert txn.read("people", intv(5)) == [intv(5), strv("eve")]


def test_create_and_drop_table():
    txn = MemoryTxn()
    created = build_executor(CreateTableNode(people())).execute(txn)
    assert created.name == "people"
    assert txn.read_table("people") == people()
    dropped = build_executor(DropTableNode("people")).execute(txn)
    assert dropped.name == "people"
    assert txn.read_table("people") is None


def test_nothing_node_yields_one_empty_row():
    assert build_executor(NothingNode()).execute(MemoryTxn()).rows == [[]]


def test_unsupported_node_raises():
    with pytest.raises(ExecutionError):
        build_executor(CoverIndexNode("people"))