"""Turning a plan tree into a tree of executors."""

from __future__ import annotations

from typing import Callable, Dict, Type

from .aggregation import AggregationExec
from .joins import HashJoinExec, NestedLoopJoinExec
from .mutation import DeleteExec, InsertExec, UpdateExec
from .nodes import (
    AggregationNode,
    CreateTableNode,
    DeleteNode,
    DropTableNode,
    FilterNode,
    HashJoinNode,
    IndexLookupNode,
    InsertNode,
    KeyLookupNode,
    LimitNode,
    NestedLoopJoinNode,
    Node,
    NothingNode,
    OffsetNode,
    OrderNode,
    ProjectionNode,
    ScanNode,
    UpdateNode,
)
from .query import FilterExec, LimitExec, OffsetExec, OrderExec, ProjectionExec
from .sources import (
    CreateTableExec,
    DropTableExec,
    ExecutionError,
    Executor,
    IndexLookupExec,
    KeyLookupExec,
    NothingExec,
    ScanExec,
)

_BUILDERS: Dict[Type[Node], Callable[..., Executor]] = {
    AggregationNode: lambda n: AggregationExec(build_executor(n.source), list(n.aggregates)),
    CreateTableNode: lambda n: CreateTableExec(n.schema),
    DeleteNode: lambda n: DeleteExec(n.table_name, build_executor(n.source)),
    DropTableNode: lambda n: DropTableExec(n.table_name),
    FilterNode: lambda n: FilterExec(build_executor(n.source), n.predicate),
    HashJoinNode: lambda n: HashJoinExec(
        build_executor(n.left),
        n.left_field.index,
        build_executor(n.right),
        n.right_field.index,
        n.outer,
    ),
    IndexLookupNode: lambda n: IndexLookupExec(n.table, n.column_name, list(n.values)),
    InsertNode: lambda n: InsertExec(n.table_name, list(n.column_names), n.expressions),
    KeyLookupNode: lambda n: KeyLookupExec(n.table_name, list(n.keys)),
    LimitNode: lambda n: LimitExec(build_executor(n.source), n.limit),
    NestedLoopJoinNode: lambda n: NestedLoopJoinExec(
        build_executor(n.left), build_executor(n.right), n.predicate, n.outer
    ),
    NothingNode: lambda n: NothingExec(),
    OffsetNode: lambda n: OffsetExec(build_executor(n.source), n.offset),
    OrderNode: lambda n: OrderExec(build_executor(n.source), list(n.orders)),
    ProjectionNode: lambda n: ProjectionExec(build_executor(n.source), list(n.expressions)),
    ScanNode: lambda n: ScanExec(n.table_name, n.filter),
    UpdateNode: lambda n: UpdateExec(
        n.table_name, build_executor(n.source), list(n.expressions)
    ),
}


def build_executor(node: Node) -> Executor:
    """Return the executor tree that runs a plan tree."""
    builder = _BUILDERS.get(type(node))
    if builder is None:
        raise ExecutionError(f"cannot execute plan node {type(node).__name__}")
    return builder(node)