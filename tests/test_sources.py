import pytest

from cabbagesql.expressions import Constant, Equal, Field
from cabbagesql.results import CreateTableResultSet, DropTableResultSet
from cabbagesql.schema import Column, SchemaError, Table, Transaction
from cabbagesql.sources import (
    CreateTableExec,
    DropTableExec,
    IndexLookupExec,
    KeyLookupExec,
    NothingExec,
    ScanExec,
)
from cabbagesql.value import DataType, Value


class MemoryTransaction(Transaction):
    def __init__(self):
        self.tables = {}
        self.rows = {}

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
        self.must_read_table(table_name)
        del self.tables[table_name]
        del self.rows[table_name]

    def read_table(self, table_name):
        return self.tables.get(table_name)

    def scan_tables(self):
        return list(self.tables.values())

    def table_references(self, table_name, with_self):
        return []

    def create(self, table, row):
        schema = self.must_read_table(table)
        self.rows[table][schema.row_key(row)] = list(row)

    def delete(self, table, id):
        del self.rows[table][id]

    def read(self, table, id):
        return self.rows[table].get(id, [])

    def read_index(self, table, column, value):
        schema = self.must_read_table(table)
        position = schema.get_column_index(column)
        return {
            schema.row_key(row) for row in self.rows[table].values() if row[position] == value
        }

    def scan(self, table, filter):
        rows = list(self.rows[table].values())
        if filter is None:
            return rows
        return [row for row in rows if filter.evaluate(row) == Value(DataType.BOOL, True)]

    def scan_index(self, table, column):
        return []

    def update(self, table, id, row):
        self.rows[table][id] = list(row)


def _int(n):
    return Value(DataType.INT, n)


def _str(s):
    return Value(DataType.STRING, s)


def _people_table():
    return Table(
        "people",
        [
            Column("id", DataType.INT, primary_key=True, nullable=False, unique=True),
            Column("name", DataType.STRING, index=True),
        ],
    )


@pytest.fixture
def txn():
    memory = MemoryTransaction()
    memory.create_table(_people_table())
    for key, name in [(1, "x"), (2, "y"), (3, "x"), (4, "z")]:
        memory.create("people", [_int(key), _str(name)])
    return memory


def test_scan_returns_all_rows(txn):
    result = ScanExec("people").execute(txn)
    assert result.columns == ["id", "name"]
    assert [row[0] for row in result.rows] == [_int(1), _int(2), _int(3), _int(4)]


def test_scan_passes_filter(txn):
    result = ScanExec("people", Equal(Field(1), Constant(_str("y")))).execute(txn)
    assert result.rows == [[_int(2), _str("y")]]


def test_scan_missing_table(txn):
    with pytest.raises(SchemaError, match="does not exist"):
        ScanExec("ghosts").execute(txn)


def test_key_lookup_keeps_key_order(txn):
    result = KeyLookupExec("people", [_int(3), _int(1)]).execute(txn)
    assert result.columns == ["id", "name"]
    assert result.rows == [[_int(3), _str("x")], [_int(1), _str("x")]]


def test_key_lookup_missing_key_gives_empty_row(txn):
    result = KeyLookupExec("people", [_int(99)]).execute(txn)
    assert result.rows == [[]]


def test_index_lookup_deduplicates(txn):
    result = IndexLookupExec("people", "name", [_str("x"), _str("x"), _str("z")]).execute(txn)
    ids = sorted(row[0].value for row in result.rows)
    assert ids == [1, 3, 4]
    assert len(result.rows) == len(set(ids))


def test_nothing_exec(txn):
    result = NothingExec().execute(txn)
    assert result.columns == []
    assert result.rows == [[]]


def test_create_and_drop_table():
    memory = MemoryTransaction()
    table = _people_table()
    created = CreateTableExec(table).execute(memory)
    assert created == CreateTableResultSet(name="people")
    assert memory.read_table("people") is table
    dropped = DropTableExec("people").execute(memory)
    assert dropped == DropTableResultSet(name="people")
    assert memory.read_table("people") is None


def test_drop_missing_table_raises():
    with pytest.raises(SchemaError):
        DropTableExec("ghosts").execute(MemoryTransaction())