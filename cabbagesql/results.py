"""Result sets returned by executing statements."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, List, Optional

from .value import Value

RESULT_SET_PREFIX = 0x09
BEGIN_RESULT_SET_PREFIX = 0x02
COMMIT_RESULT_SET_PREFIX = 0x03
ROLLBACK_RESULT_SET_PREFIX = 0x04
CREATE_RESULT_SET_PREFIX = 0x05
DELETE_RESULT_SET_PREFIX = 0x06
CREATE_TABLE_RESULT_SET_PREFIX = 0x07
DROP_TABLE_RESULT_SET_PREFIX = 0x08
QUERY_RESULT_SET_PREFIX = 0x09
EXPLAIN_RESULT_SET_PREFIX = 0x10


class ResultSet:
    """Base of every statement result."""

    PREFIX: ClassVar[int] = RESULT_SET_PREFIX


@dataclass
class BeginResultSet(ResultSet):
    """A transaction was started."""

    PREFIX: ClassVar[int] = BEGIN_RESULT_SET_PREFIX

    version: int = 0
    read_only: bool = False


@dataclass
class CommitResultSet(ResultSet):
    """A transaction was committed."""

    PREFIX: ClassVar[int] = COMMIT_RESULT_SET_PREFIX

    version: int = 0


@dataclass
class RollbackResultSet(ResultSet):
    """A transaction was rolled back."""

    PREFIX: ClassVar[int] = ROLLBACK_RESULT_SET_PREFIX

    version: int = 0


@dataclass
class CreateResultSet(ResultSet):
    """Rows were inserted."""

    PREFIX: ClassVar[int] = CREATE_RESULT_SET_PREFIX

    count: int = 0


@dataclass
class DeleteResultSet(ResultSet):
    """Rows were deleted."""

    PREFIX: ClassVar[int] = DELETE_RESULT_SET_PREFIX

    count: int = 0


@dataclass
class UpdateResultSet(ResultSet):
    """Rows were updated."""

    count: int = 0


@dataclass
class CreateTableResultSet(ResultSet):
    """A table was created."""

    PREFIX: ClassVar[int] = CREATE_TABLE_RESULT_SET_PREFIX

    name: str = ""


@dataclass
class DropTableResultSet(ResultSet):
    """A table was dropped."""

    PREFIX: ClassVar[int] = DROP_TABLE_RESULT_SET_PREFIX

    name: str = ""


@dataclass
class QueryResultSet(ResultSet):
    """Rows produced by a query, with their column names."""

    PREFIX: ClassVar[int] = QUERY_RESULT_SET_PREFIX

    columns: List[str] = field(default_factory=list)
    rows: List[List[Optional[Value]]] = field(default_factory=list)


@dataclass
class ExplainResultSet(ResultSet):
    """A textual description of a query plan."""

    PREFIX: ClassVar[int] = EXPLAIN_RESULT_SET_PREFIX

    node_info: str = ""


def result_set_prefix(result: Any) -> int:
    """Return the type tag of a result; unknown results get the generic tag."""
    if isinstance(result, ResultSet):
        return result.PREFIX
    return RESULT_SET_PREFIX