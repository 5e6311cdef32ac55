"""Table schemas, their validation rules and the catalog and transaction interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Set

from .expressions import Expression
from .value import DataType, Value, decode_data_type, equal_value

Row = Sequence[Optional[Value]]


class SchemaError(Exception):
    """Raised when a schema or a row breaks the rules of its table."""


@dataclass(frozen=True)
class ReferenceField:
    """The table and column a foreign key points at."""

    table_name: str
    column_name: str


@dataclass
class Column:
    """A column definition with its constraints."""

    name: str
    data_type: DataType
    primary_key: bool = False
    nullable: bool = True
    default: Optional[Value] = None
    unique: bool = False
    index: bool = False
    reference: Optional[ReferenceField] = None

    def validate(self, table: Table, txn: Catalog) -> None:
        """Check the column definition against its table and the catalog."""
        if self.primary_key and self.nullable:
            raise SchemaError(f"Primary key {self.name} cannot be nullable")
        if self.primary_key and not self.unique:
            raise SchemaError(f"Primary key {self.name} must be unique")

        if self.default is not None:
            default_type = decode_data_type(self.default.value)
            if default_type == DataType.NULL:
                if not self.nullable:
                    raise SchemaError(
                        "Can't use NULL as default value for non-nullable column "
                        f"{self.name}"
                    )
            elif default_type != self.data_type:
                raise SchemaError(
                    f"Default value for column {self.name} has datatype "
                    f"{default_type}, must be {self.data_type}"
                )

        if self.reference is None:
            return

        reference = self.reference
        if reference.table_name != table.name:
            target = txn.read_table(reference.table_name)
        else:
            target = table
        if target is None:
            raise SchemaError(f"Referenced table {reference.table_name} does not exist")

        target_column = target.columns[target.get_column_index(reference.column_name)]
        if not target_column.index and not target_column.primary_key:
            raise SchemaError(
                f"Referenced column {reference.column_name} must be a primary key or index"
            )
        if self.data_type != target_column.data_type:
            raise SchemaError("Referenced column datatype is not equal")

    def validate_value(
        self, table: Table, pk: Optional[Value], value: Value, txn: Transaction
    ) -> None:
        """Check one value of a row against this column's constraints."""
        value_type = decode_data_type(value.value)
        if value_type == DataType.NULL:
            if not self.nullable:
                raise SchemaError(f"NULL value not allowed for column: {self.name}")
        elif value_type != self.data_type:
            raise SchemaError(
                f"Invalid datatype {value_type} for {self.data_type} column {self.name}"
            )

        if self.reference is not None:
            reference = self.reference
            rows = txn.scan(reference.table_name, None)
            if not rows:
                raise SchemaError(
                    f"Referenced column value {value} in table "
                    f"{reference.table_name} does not exist"
                )
            target = txn.must_read_table(reference.table_name)
            target_column = target.columns[target.get_column_index(reference.column_name)]
            missing = SchemaError(
                f"Referenced column value {value} does not exist in table "
                f"{reference.table_name}"
            )
            if target_column.index:
                if not txn.read_index(target.name, reference.column_name, value):
                    raise missing
            if target_column.primary_key:
                if not any(equal_value(value, target.row_key(row)) for row in rows):
                    raise missing

        if self.unique and not self.primary_key:
            if txn.read_index(table.name, self.name, value):
                raise SchemaError(
                    f"Unique value {value} already exists for column {self.name}"
                )

    def constraint_string(self) -> str:
        """Table-level constraints this column contributes, one per line."""
        constraints = []
        if self.reference is not None:
            constraints.append(
                f"FOREIGN KEY ({self.name}) REFERENCES "
                f"{self.reference.table_name}({self.reference.column_name})"
            )
        if not self.unique and self.index:
            constraints.append(f"KEY {self.name} ({self.name})")
        return "\n".join(constraints)

    def __str__(self) -> str:
        parts = [f"{self.name} {self.data_type}"]
        if self.primary_key:
            parts.append(" PRIMARY KEY")
        if not self.nullable and not self.primary_key:
            parts.append(" NOT NULL")
        if self.default is not None:
            parts.append(f" DEFAULT {self.default}")
        if self.unique and not self.primary_key:
            parts.append(" UNIQUE")
        return "".join(parts)


@dataclass
class Table:
    """A named table made of columns."""

    name: str
    columns: List[Column] = field(default_factory=list)

    def validate_row(self, row: Row, txn: Transaction) -> None:
        """Check a full row against every column of the table."""
        if len(row) != len(self.columns):
            raise SchemaError(f"Invalid row size for table {self.name}")
        pk = self.row_key(row)
        for column, value in zip(self.columns, row):
            column.validate_value(self, pk, value, txn)

    def get_column(self, name: str) -> Column:
        """Return the column with the given name."""
        for column in self.columns:
            if column.name == name:
                return column
        raise SchemaError(f"Column {name} not found in table {self.name}")

    def get_column_index(self, name: str) -> int:
        """Return the position of the column with the given name."""
        for position, column in enumerate(self.columns):
            if column.name == name:
                return position
        raise SchemaError(f"Column {name} not found in table {self.name}")

    def validate(self, txn: Catalog) -> None:
        """Check the table definition: columns exist and exactly one is the primary key."""
        if not self.columns:
            raise SchemaError(f"Table {self.name} has no columns")
        if sum(1 for column in self.columns if column.primary_key) != 1:
            raise SchemaError(f"No primary key in table {self.name}")
        for column in self.columns:
            column.validate(self, txn)

    def primary_key(self) -> Optional[Column]:
        """Return the primary key column, if the table has one."""
        return next((column for column in self.columns if column.primary_key), None)

    def row_key(self, row: Row) -> Optional[Value]:
        """Return the primary key value of a row."""
        for column, value in zip(self.columns, row):
            if column.primary_key:
                return value
        return None

    def __str__(self) -> str:
        parts = [str(column) for column in self.columns]
        for column in self.columns:
            parts.extend(
                line.strip()
                for line in column.constraint_string().split("\n")
                if line.strip()
            )
        body = ",\n  ".join(parts)
        return f"CREATE TABLE {self.name} (\n  {body}\n);"


@dataclass
class TableReferences:
    """The columns of one table that reference another table."""

    table_name: str
    column_references: List[str] = field(default_factory=list)


@dataclass
class IndexValue:
    """An indexed value and the primary keys of the rows that hold it."""

    value: Any
    value_hash_set: Set[Value] = field(default_factory=set)


class Catalog(ABC):
    """Access to the table schemas."""

    @abstractmethod
    def create_table(self, table: Table) -> None:
        """Store a new table schema."""

    @abstractmethod
    def delete_table(self, table_name: str) -> None:
        """Remove a table and its data."""

    @abstractmethod
    def read_table(self, table_name: str) -> Optional[Table]:
        """Return the table schema, or None if it does not exist."""

    @abstractmethod
    def scan_tables(self) -> List[Table]:
        """Return every table schema."""

    def must_read_table(self, table_name: str) -> Table:
        """Return the table schema, raising if it does not exist."""
        table = self.read_table(table_name)
        if table is None or not table.name:
            raise SchemaError(f"Table {table_name} does not exist")
        return table

    @abstractmethod
    def table_references(self, table_name: str, with_self: bool) -> List[TableReferences]:
        """Return the tables with columns referencing table_name."""


class Transaction(Catalog):
    """A transaction over the catalog and the table rows."""

    @abstractmethod
    def version(self) -> int:
        """The version the transaction runs at."""

    @abstractmethod
    def read_only(self) -> bool:
        """True if the transaction cannot write."""

    @abstractmethod
    def commit(self) -> bool:
        """Commit the transaction."""

    @abstractmethod
    def rollback(self) -> bool:
        """Roll the transaction back."""

    @abstractmethod
    def create(self, table: str, row: Row) -> None:
        """Insert a row."""

    @abstractmethod
    def delete(self, table: str, id: Value) -> None:
        """Delete the row with the given primary key."""

    @abstractmethod
    def read(self, table: str, id: Value) -> List[Optional[Value]]:
        """Read the row with the given primary key."""

    @abstractmethod
    def read_index(self, table: str, column: str, value: Value) -> Set[Value]:
        """Return the primary keys of rows whose column holds value."""

    @abstractmethod
    def scan(
        self, table: str, filter: Optional[Expression]
    ) -> List[List[Optional[Value]]]:
        """Return the rows of a table that pass the filter."""

    @abstractmethod
    def scan_index(self, table: str, column: str) -> List[IndexValue]:
        """Return every entry of a column index."""

    @abstractmethod
    def update(self, table: str, id: Value, row: Row) -> None:
        """Replace the row with the given primary key."""