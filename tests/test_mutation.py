import pytest

from cabbagesql.expressions import Constant, Equal, Field
from cabbagesql.mutation import DeleteExec, InsertExec, UpdateExec, make_row, pad_row
from cabbagesql.nodes import UpdateExpr
from cabbagesql.results import CreateResultSet
from cabbagesql.schema import Column, SchemaError, Table, Transaction
from cabbagesql.sources import ExecutionError, Executor, ScanExec
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


def people():
    return Table(
        "people",
        [
            Column("id", DataType.INT, primary_key=True, nullable=False, unique=True),
            Column("name", DataType.STRING, default=Value(DataType.NULL)),
            Column("age", DataType.INT, nullable=False),
        ],
    )


def intv(number):
    return Value(DataType.INT, number)


def strv(text):
    return Value(DataType.STRING, text)


class NotAQuery(Executor):
    def execute(self, txn):
        return CreateResultSet(count=0)


def seeded():
    txn = MemoryTxn(people())
    txn.create("people", [intv(1), strv("ann"), intv(30)])
    txn.create("people", [intv(2), strv("bob"), intv(25)])
    return txn


def test_make_row_orders_by_table_and_fills_defaults():
    row = make_row(people(), ["age", "id"], [intv(30), intv(1)])
    assert row == [intv(1), Value(DataType.NULL), intv(30)]


def test_make_row_count_mismatch():
    with pytest.raises(ExecutionError):
        make_row(people(), ["id"], [intv(1), intv(2)])


def test_make_row_unknown_column():
    with pytest.raises(SchemaError):
        make_row(people(), ["missing"], [intv(1)])


def test_pad_row_appends_trailing_defaults():
    assert pad_row(people(), [intv(1)]) == [intv(1), Value(DataType.NULL)]


def test_pad_row_full_row_unchanged():
    row = [intv(1), strv("ann"), intv(30)]
    assert pad_row(people(), row) == row


def test_pad_row_too_long():
    with pytest.raises(ExecutionError):
        pad_row(people(), [intv(1), strv("a"), intv(2), intv(3)])


def test_insert_positional_rows():
    txn = MemoryTxn(people())
    rows = [
        [Constant(intv(1)), Constant(strv("ann")), Constant(intv(30))],
        [Constant(intv(2)), Constant(strv("bob")), Constant(intv(25))],
    ]
    result = InsertExec("people", [], rows).execute(txn)
    assert result.count == 2
    assert txn.read("people", intv(2)) == [intv(2), strv("bob"), intv(25)]


def test_insert_named_columns_uses_defaults():
    txn = MemoryTxn(people())
    InsertExec("people", ["id", "age"], [[Constant(intv(7)), Constant(intv(40))]]).execute(txn)
    assert txn.read("people", intv(7)) == [intv(7), Value(DataType.NULL), intv(40)]


def test_insert_into_missing_table():
    with pytest.raises(SchemaError):
        InsertExec("nowhere", [], [[Constant(intv(1))]]).execute(MemoryTxn())


def test_update_assigns_every_row():
    txn = seeded()
    assignment = UpdateExpr(2, "age", Constant(intv(99)))
    result = UpdateExec("people", ScanExec("people"), [assignment]).execute(txn)
    assert result.count == 2
    assert [row[2] for row in txn.scan("people", None)] == [intv(99), intv(99)]


def test_update_rejects_non_query_source():
    with pytest.raises(ExecutionError):
        UpdateExec("people", NotAQuery(), []).execute(seeded())


def test_delete_filtered_rows():
    txn = seeded()
    source = ScanExec("people", Equal(Field(0, None), Constant(intv(1))))
    result = DeleteExec("people", source).execute(txn)
    assert result.count == 1
    assert txn.read("people", intv(1)) == []
    assert txn.read("people", intv(2)) == [intv(2), strv("bob"), intv(25)]


def test_delete_rejects_non_query_source():
    with pytest.raises(ExecutionError):
        DeleteExec("people", NotAQuery()).execute(seeded())