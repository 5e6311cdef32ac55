from dataclasses import dataclass

import pytest

from cabbagesql.expressions import Equal, Field
from cabbagesql.joins import HashJoinExec, NestedLoopJoinExec, nested_loop_rows
from cabbagesql.results import CreateResultSet, QueryResultSet, ResultSet
from cabbagesql.sources import ExecutionError, Executor
from cabbagesql.value import DataType, Value


@dataclass
class _Fixed(Executor):
    result: ResultSet

    def execute(self, txn):
        return self.result


def _int(n):
    return Value(DataType.INT, n)


NULL = Value(DataType.NULL)
LEFT = QueryResultSet(columns=["id"], rows=[[_int(1)], [_int(2)]])
RIGHT = QueryResultSet(columns=["ref", "name"], rows=[
    [_int(1), Value(DataType.STRING, "one")],
    [_int(3), Value(DataType.STRING, "three")],
])


def test_cross_product_without_predicate():
    left = [[_int(1)], [_int(2)]]
    right = [[_int(10)], [_int(20)], [_int(30)]]
    rows = nested_loop_rows(left, right, None, 1, False)
    assert len(rows) == len(left) * len(right)
    assert rows[0] == left[0] + right[0]
    assert rows[-1] == left[-1] + right[-1]


def test_nested_loop_inner_and_outer():
    left = [[_int(1)], [_int(2)]]
    right = [[_int(1)], [_int(3)]]
    predicate = Equal(Field(0), Field(1))
    assert nested_loop_rows(left, right, predicate, 1, False) == [[_int(1), _int(1)]]
    assert nested_loop_rows(left, right, predicate, 1, True) == [
        [_int(1), _int(1)],
        [_int(2), NULL],
    ]


def test_nested_loop_does_not_mutate_inputs():
    left = [[_int(1)]]
    right = [[_int(2)]]
    nested_loop_rows(left, right, None, 1, True)
    assert left == [[_int(1)]]
    assert right == [[_int(2)]]


def test_nested_loop_exec_columns_and_rows():
    exec_ = NestedLoopJoinExec(_Fixed(LEFT), _Fixed(RIGHT), Equal(Field(0), Field(1)), True)
    result = exec_.execute(None)
    assert result.columns == ["id", "ref", "name"]
    assert result.rows == [LEFT.rows[0] + RIGHT.rows[0], LEFT.rows[1] + [NULL, NULL]]


@pytest.mark.parametrize("outer", [False, True])
def test_hash_join_matches_nested_loop(outer):
    hashed = HashJoinExec(_Fixed(LEFT), 0, _Fixed(RIGHT), 0, outer).execute(None)
    looped = NestedLoopJoinExec(
        _Fixed(LEFT), _Fixed(RIGHT), Equal(Field(0), Field(1)), outer
    ).execute(None)
    assert hashed.columns == looped.columns
    assert hashed.rows == looped.rows


def test_hash_join_multiple_matches():
    right = QueryResultSet(columns=["ref"], rows=[[_int(1)], [_int(1)]])
    result = HashJoinExec(_Fixed(LEFT), 0, _Fixed(right), 0).execute(None)
    assert result.rows == [[_int(1), _int(1)], [_int(1), _int(1)]]


@pytest.mark.parametrize("exec_type", ["hash", "loop"])
def test_join_rejects_non_query_source(exec_type):
    bad = _Fixed(CreateResultSet(count=1))
    exec_ = (
        HashJoinExec(_Fixed(LEFT), 0, bad, 0)
        if exec_type == "hash"
        else NestedLoopJoinExec(_Fixed(LEFT), bad)
    )
    with pytest.raises(ExecutionError):
        exec_.execute(None)