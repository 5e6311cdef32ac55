"""Join executors: nested loop and hash join."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .aggregation import encode_key
from .expressions import Expression
from .results import QueryResultSet, ResultSet
from .schema import Transaction
from .sources import ExecutionError, Executor
from .value import DataType, Value

RowList = List[List[Optional[Value]]]


def _null_row(width: int) -> List[Optional[Value]]:
    return [Value(DataType.NULL) for _ in range(width)]


def _is_true(value: Optional[Value]) -> bool:
    return value is not None and value.type == DataType.BOOL and value.value is True


def nested_loop_rows(
    left: Sequence[Sequence[Optional[Value]]],
    right: Sequence[Sequence[Optional[Value]]],
    predicate: Optional[Expression],
    right_width: int,
    outer: bool,
) -> RowList:
    """Combine every left row with every right row that passes the predicate.

    With outer set, a left row without any match is kept, padded with NULLs.
    """
    results: RowList = []
    for left_row in left:
        matched = False
        for right_row in right:
            combined = [*left_row, *right_row]
            if predicate is not None and not _is_true(predicate.evaluate(combined)):
                continue
            results.append(combined)
            matched = True
        if outer and not matched:
            results.append([*left_row, *_null_row(right_width)])
    return results


def _both_queries(
    left: Executor, right: Executor, txn: Transaction, name: str
) -> Tuple[QueryResultSet, QueryResultSet]:
    left_result = left.execute(txn)
    right_result = right.execute(txn)
    if not isinstance(left_result, QueryResultSet) or not isinstance(
        right_result, QueryResultSet
    ):
        raise ExecutionError(f"{name}: invalid source result set")
    return left_result, right_result


@dataclass
class NestedLoopJoinExec(Executor):
    """Joins two sources by testing every pair of rows."""

    left: Executor
    right: Executor
    predicate: Optional[Expression] = None
    outer: bool = False

    def execute(self, txn: Transaction) -> ResultSet:
        left, right = _both_queries(self.left, self.right, txn, "NestedLoopJoinExec")
        rows = nested_loop_rows(
            left.rows, right.rows, self.predicate, len(right.columns), self.outer
        )
        return QueryResultSet(columns=[*left.columns, *right.columns], rows=rows)


@dataclass
class HashJoinExec(Executor):
    """Joins two sources on equality of one field from each."""

    left: Executor
    left_field: int
    right: Executor
    right_field: int
    outer: bool = False

    def execute(self, txn: Transaction) -> ResultSet:
        left, right = _both_queries(self.left, self.right, txn, "HashJoinExec")

        buckets: Dict[str, RowList] = defaultdict(list)
        for row in right.rows:
            buckets[encode_key(row[self.right_field])].append(list(row))

        rows: RowList = []
        for row in left.rows:
            hits = buckets.get(encode_key(row[self.left_field]))
            if hits:
                rows.extend([*row, *hit] for hit in hits)
            elif self.outer:
                rows.append([*row, *_null_row(len(right.columns))])
        return QueryResultSet(columns=[*left.columns, *right.columns], rows=rows)