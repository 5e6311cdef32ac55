"""Query plan nodes and generic rewriting of plan trees."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, is_dataclass, replace
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, List, Optional

from .expressions import Expression, Field
from .schema import Table
from .transform import ExprFn, transform
from .value import Value


class Aggregate(IntEnum):
    """The aggregate functions a plan can compute."""

    AVERAGE = 0
    COUNT = 1
    MAX = 2
    MIN = 3
    SUM = 4

    def __str__(self) -> str:
        return _AGGREGATE_NAMES[self]


_AGGREGATE_NAMES = {
    Aggregate.AVERAGE: "average",
    Aggregate.COUNT: "count",
    Aggregate.MAX: "max",
    Aggregate.MIN: "min",
    Aggregate.SUM: "sum",
}


class JoinType(Enum):
    """The kinds of join a FROM clause can express."""

    CROSS = "cross"
    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"


class Node:
    """Base of every plan node."""


@dataclass
class NothingNode(Node):
    """Produces a single empty row."""


@dataclass
class AggregationNode(Node):
    """Aggregates the leading columns of its source, grouped by the rest."""

    source: Node
    aggregates: List[Aggregate] = field(default_factory=list)


@dataclass
class CreateTableNode(Node):
    """Creates a table."""

    schema: Table


@dataclass
class DeleteNode(Node):
    """Deletes the rows produced by its source."""

    table_name: str
    source: Node


@dataclass
class DropTableNode(Node):
    """Drops a table."""

    table_name: str


@dataclass
class FilterNode(Node):
    """Keeps the rows of its source for which the predicate is true."""

    source: Node
    predicate: Optional[Expression] = None


@dataclass
class HashJoinNode(Node):
    """Joins two sources on equality of one field from each."""

    left: Node
    left_field: Field
    right: Node
    right_field: Field
    outer: bool = False


@dataclass
class CoverIndexNode(Node):
    """Answers a query from index contents alone."""

    table: str
    alias: str = ""
    columns: List[str] = field(default_factory=list)
    values: List[List[Value]] = field(default_factory=list)


@dataclass
class IndexLookupNode(Node):
    """Looks rows up through a secondary index."""

    table: str
    alias: str = ""
    column_name: str = ""
    values: List[Value] = field(default_factory=list)


@dataclass
class InsertNode(Node):
    """Inserts rows built from constant expressions."""

    table_name: str
    column_names: List[str] = field(default_factory=list)
    expressions: List[List[Optional[Expression]]] = field(default_factory=list)


@dataclass
class KeyLookupNode(Node):
    """Reads rows by primary key."""

    table_name: str
    alias: str = ""
    keys: List[Value] = field(default_factory=list)


@dataclass
class LimitNode(Node):
    """Keeps at most a number of rows of its source."""

    source: Node
    limit: int


@dataclass
class NestedLoopJoinNode(Node):
    """Joins two sources by testing every pair of rows."""

    left: Node
    left_size: int
    right: Node
    predicate: Optional[Expression] = None
    outer: bool = False
    join_type: JoinType = JoinType.CROSS


@dataclass
class OffsetNode(Node):
    """Skips a number of rows of its source."""

    source: Node
    offset: int


@dataclass
class DirectionExpr:
    """An ordering expression and its direction."""

    expr: Optional[Expression]
    desc: bool = False


@dataclass
class OrderNode(Node):
    """Sorts the rows of its source."""

    source: Node
    orders: List[DirectionExpr] = field(default_factory=list)


@dataclass
class ExprAs:
    """An expression with an optional output name."""

    expr: Optional[Expression]
    alias: str = ""


@dataclass
class ProjectionNode(Node):
    """Computes output columns from the rows of its source."""

    source: Node
    expressions: List[ExprAs] = field(default_factory=list)


@dataclass
class ScanNode(Node):
    """Reads every row of a table, optionally filtered."""

    table_name: str
    alias: str = ""
    filter: Optional[Expression] = None


@dataclass
class UpdateExpr:
    """Assignment of an expression to the column at a position."""

    index: int
    name: str
    expr: Optional[Expression]


@dataclass
class UpdateNode(Node):
    """Updates the rows produced by its source."""

    table_name: str
    source: Node
    expressions: List[UpdateExpr] = field(default_factory=list)


NodeFn = Callable[[Node], Node]

_SINGLE_SOURCE = (
    AggregationNode,
    DeleteNode,
    FilterNode,
    LimitNode,
    OffsetNode,
    OrderNode,
    ProjectionNode,
    UpdateNode,
)
_JOINS = (HashJoinNode, NestedLoopJoinNode)


def transform_node(node: Node, before: NodeFn, after: NodeFn) -> Node:
    """Rebuild the plan, applying before on the way down and after on the way up."""
    node = before(node)
    if isinstance(node, _SINGLE_SOURCE):
        node = replace(node, source=transform_node(node.source, before, after))
    elif isinstance(node, _JOINS):
        node = replace(
            node,
            left=transform_node(node.left, before, after),
            right=transform_node(node.right, before, after),
        )
    return after(node)


def transform_node_expressions(node: Node, before: ExprFn, after: ExprFn) -> Node:
    """Rewrite the expressions held directly by a node, leaving its children alone."""

    def rewrite(expr: Optional[Expression]) -> Optional[Expression]:
        return transform(expr, before, after)

    if isinstance(node, FilterNode):
        if node.predicate is not None:
            return replace(node, predicate=rewrite(node.predicate))
    elif isinstance(node, InsertNode):
        return replace(
            node,
            expressions=[[rewrite(expr) for expr in row] for row in node.expressions],
        )
    elif isinstance(node, OrderNode):
        return replace(
            node,
            orders=[DirectionExpr(rewrite(order.expr), order.desc) for order in node.orders],
        )
    elif isinstance(node, NestedLoopJoinNode):
        if node.predicate is not None:
            return replace(node, predicate=rewrite(node.predicate))
    elif isinstance(node, ProjectionNode):
        return replace(
            node,
            expressions=[ExprAs(rewrite(item.expr), item.alias) for item in node.expressions],
        )
    elif isinstance(node, ScanNode):
        if node.filter is not None:
            return replace(node, filter=rewrite(node.filter))
    elif isinstance(node, UpdateNode):
        return replace(
            node,
            expressions=[
                UpdateExpr(item.index, item.name, rewrite(item.expr))
                for item in node.expressions
            ],
        )
    return node


def _camel(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_"))


def _jsonable(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if is_dataclass(obj) and not isinstance(obj, type):
        return {_camel(f.name): _jsonable(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, dict):
        return {str(key): _jsonable(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in obj]
    return str(obj)


def _dump(data: Any) -> str:
    return json.dumps(_jsonable(data), separators=(",", ":"))


def _summary(node: Node) -> Optional[Dict[str, Any]]:
    if isinstance(node, AggregationNode):
        return {"Aggregates:": node.aggregates}
    if isinstance(node, DeleteNode):
        return {"TableName:": node.table_name}
    if isinstance(node, FilterNode):
        return {"Predicate:": node.predicate}
    if isinstance(node, LimitNode):
        return {"Limit:": node.limit}
    if isinstance(node, OffsetNode):
        return {"Offset:": node.offset}
    if isinstance(node, OrderNode):
        return {"Orders:": node.orders}
    if isinstance(node, ProjectionNode):
        return {"Expressions:": node.expressions}
    return None


def format_node(node: Optional[Node], indent_level: int) -> str:
    """Render a plan tree as indented text, one node per line."""
    indent = "---> " * indent_level
    name = type(node).__name__
    lines: List[str] = []

    summary = _summary(node) if node is not None else None
    if summary is not None:
        lines.append(f"{indent}{name} {_dump(summary)}\n")
        source = getattr(node, "source", None)
        if source is not None:
            lines.append(format_node(source, indent_level + 1))
    elif isinstance(node, CreateTableNode):
        lines.append(f"{indent}{name} {_dump({'Table:': node.schema})}\n")
    elif isinstance(node, DropTableNode):
        lines.append(f"{indent}{name} {_dump({'TableName:': node.table_name})}\n")
    elif isinstance(node, HashJoinNode):
        data = {
            "JoinType": "LEFT OUTER JOIN" if node.outer else "INNER JOIN",
            "LeftField": node.left_field,
            "RightField": node.right_field,
        }
        lines.append(f"{indent}{name} {_dump(data)}\n")
        if node.left is not None:
            lines.append(f"{indent}---> LEFT:\n")
            lines.append(format_node(node.left, indent_level + 1))
        if node.right is not None:
            lines.append(f"{indent}---> RIGHT:\n")
            lines.append(format_node(node.right, indent_level + 1))
    elif isinstance(
        node, (CoverIndexNode, IndexLookupNode, InsertNode, KeyLookupNode, NestedLoopJoinNode)
    ):
        lines.append(f"{indent}{name}{_dump(node)}\n")
    elif isinstance(node, ScanNode):
        lines.append(f"{indent}{name} {_dump(node)}\n")
    elif isinstance(node, UpdateNode):
        data = {"Expressions:": node.expressions, "TableName": node.table_name}
        lines.append(f"{indent}{name} {_dump(data)}\n")
    elif isinstance(node, NothingNode):
        lines.append(f"{indent}{name} \n")
    return "".join(lines)