"""Query plans and the optimizer passes that rewrite them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence, Tuple

from .build import build_executor
from .expressions import And, Constant, Equal, Expression, Field, Or
from .forms import as_lookup, from_cnf_list, from_lookup, into_cnf_list
from .nodes import (
    FilterNode,
    HashJoinNode,
    IndexLookupNode,
    JoinType,
    KeyLookupNode,
    NestedLoopJoinNode,
    Node,
    ScanNode,
    transform_node,
    transform_node_expressions,
)
from .results import ResultSet
from .schema import Catalog, SchemaError, Transaction
from .transform import contains, transform
from .value import DataType, Value

_TRUE = Value(DataType.BOOL, True)
_FALSE = Value(DataType.BOOL, False)


def _same(item):
    return item


def _is_bool(expr: Optional[Expression], flag: bool) -> bool:
    return (
        isinstance(expr, Constant)
        and expr.value is not None
        and expr.value.type == DataType.BOOL
        and expr.value.value is flag
    )


def _is_false_or_null(expr: Optional[Expression]) -> bool:
    if _is_bool(expr, False):
        return True
    return (
        isinstance(expr, Constant)
        and expr.value is not None
        and expr.value.type == DataType.NULL
    )


def partition_cnf(
    cnf: Sequence[Optional[Expression]],
    predicate: Callable[[Optional[Expression]], bool],
) -> Tuple[List[Optional[Expression]], List[Optional[Expression]]]:
    """Split conjuncts into those with no node matching predicate, and the rest."""
    push: List[Optional[Expression]] = []
    remaining: List[Optional[Expression]] = []
    for conjunct in cnf:
        (remaining if contains(conjunct, predicate) else push).append(conjunct)
    return push, remaining


class Optimizer(ABC):
    """A rewriting pass over a plan tree."""

    @abstractmethod
    def optimize(self, node: Node) -> Node:
        """Return the rewritten plan."""


class ConstantFolder(Optimizer):
    """Replaces expressions that read no fields with their value."""

    @staticmethod
    def _fold(expr: Optional[Expression]) -> Optional[Expression]:
        if expr is None or isinstance(expr, Constant):
            return expr
        if contains(expr, lambda node: isinstance(node, Field)):
            return expr
        return Constant(expr.evaluate([]))

    def optimize(self, node: Node) -> Node:
        return transform_node(
            node,
            _same,
            lambda item: transform_node_expressions(item, self._fold, _same),
        )


class FilterPushdown(Optimizer):
    """Moves filter predicates into scans and join predicates."""

    def optimize(self, node: Node) -> Node:
        def before(item: Node) -> Node:
            if isinstance(item, FilterNode):
                remainder = self.push_down(item.predicate, item.source)
                if remainder is None:
                    remainder = Constant(_TRUE)
                return FilterNode(item.source, remainder)
            if isinstance(item, NestedLoopJoinNode):
                predicate = self.push_down_join(
                    item.predicate, item.left, item.right, item.left_size, item.join_type
                )
                return replace(item, predicate=predicate)
            return item

        return transform_node(node, before, _same)

    def push_down(
        self, expression: Optional[Expression], target: Node
    ) -> Optional[Expression]:
        """Merge expression into target if it can hold it; return what is left over."""
        if expression is None:
            return None
        if isinstance(target, ScanNode):
            if target.filter is not None:
                expression = And(expression, target.filter)
            target.filter = expression
            return None
        if isinstance(target, NestedLoopJoinNode):
            if target.predicate is not None:
                expression = And(expression, target.predicate)
            target.predicate = expression
            return None
        if isinstance(target, FilterNode):
            if target.predicate is not None:
                expression = And(expression, target.predicate)
            target.predicate = expression
            return None
        return expression

    def push_down_join(
        self,
        predicate: Optional[Expression],
        left: Node,
        right: Node,
        boundary: int,
        join_type: JoinType,
    ) -> Optional[Expression]:
        """Push the one-sided conjuncts of a join predicate into its inputs.

        Equality between a left and a right field lets a lookup on one side
        be copied to the other. Returns the part of the predicate left to
        the join itself.
        """
        if predicate is None:
            return None
        cnf = into_cnf_list(predicate)
        push_left, cnf = partition_cnf(
            cnf, lambda e: isinstance(e, Field) and e.index >= boundary
        )
        push_right, cnf = partition_cnf(
            cnf, lambda e: isinstance(e, Field) and e.index < boundary
        )

        for conjunct in cnf:
            if not (
                isinstance(conjunct, Equal)
                and isinstance(conjunct.left, Field)
                and isinstance(conjunct.right, Field)
            ):
                continue
            low, high = sorted((conjunct.left, conjunct.right), key=lambda f: f.index)
            derived = False
            for pushed in list(push_left):
                values = as_lookup(pushed, low.index)
                if values is not None:
                    derived = True
                    push_right.append(_relabel(from_lookup(high.index, None, values), high))
            if derived:
                continue
            for pushed in list(push_right):
                values = as_lookup(pushed, high.index)
                if values is not None:
                    push_left.append(_relabel(from_lookup(low.index, None, values), low))

        left_expr = from_cnf_list(push_left)
        if left_expr is not None:
            remainder = (
                self.push_down(left_expr, left) if join_type != JoinType.LEFT else left_expr
            )
            if remainder is not None:
                cnf.append(remainder)

        right_expr = from_cnf_list(push_right)
        if right_expr is not None:
            if join_type != JoinType.RIGHT:
                shifted = transform(
                    right_expr,
                    lambda e: replace(e, index=e.index - boundary)
                    if isinstance(e, Field)
                    else e,
                    _same,
                )
                remainder = self.push_down(shifted, right)
            else:
                remainder = right_expr
            if remainder is not None:
                cnf.append(remainder)

        return from_cnf_list(cnf)


def _relabel(expr: Optional[Expression], source: Field) -> Optional[Expression]:
    """Replace fields at the position of source with source itself, keeping its label."""
    return transform(
        expr,
        lambda e: source if isinstance(e, Field) and e.index == source.index else e,
        _same,
    )


class IndexLookupOptimizer(Optimizer):
    """Turns scans filtered on the primary key or an indexed column into lookups."""

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog

    def wrap_cnf(self, node: Node, cnf: Sequence[Optional[Expression]]) -> Node:
        """Put the remaining conjuncts, if any, in a filter over node."""
        predicate = from_cnf_list(list(cnf))
        if predicate is not None:
            return FilterNode(node, predicate)
        return node

    def _rewrite_scan(self, node: ScanNode) -> Node:
        try:
            table = self.catalog.must_read_table(node.table_name)
        except SchemaError:
            return node
        pk = next(
            (position for position, column in enumerate(table.columns) if column.primary_key),
            None,
        )
        if pk is None:
            return node

        cnf = into_cnf_list(node.filter)
        for position, conjunct in enumerate(cnf):
            rest = cnf[:position] + cnf[position + 1:]
            keys = as_lookup(conjunct, pk)
            if keys:
                return self.wrap_cnf(KeyLookupNode(node.table_name, node.alias, keys), rest)
            for column_position, column in enumerate(table.columns):
                if not column.index:
                    continue
                values = as_lookup(conjunct, column_position)
                if values is not None:
                    lookup = IndexLookupNode(
                        table=node.table_name,
                        alias=node.alias,
                        column_name=column.name,
                        values=values,
                    )
                    return self.wrap_cnf(lookup, rest)
        return node

    def optimize(self, node: Node) -> Node:
        def after(item: Node) -> Node:
            if isinstance(item, ScanNode) and item.filter is not None:
                return self._rewrite_scan(item)
            return item

        return transform_node(node, _same, after)


class NoopCleaner(Optimizer):
    """Simplifies boolean constants and drops filters that are always true."""

    @staticmethod
    def _simplify(expr: Optional[Expression]) -> Optional[Expression]:
        if isinstance(expr, And):
            if _is_false_or_null(expr.left) or _is_false_or_null(expr.right):
                return Constant(_FALSE)
            if _is_bool(expr.left, True):
                return expr.right
            if _is_bool(expr.right, True):
                return expr.left
        elif isinstance(expr, Or):
            if _is_false_or_null(expr.left):
                return expr.right
            if _is_false_or_null(expr.right):
                return expr.left
            if _is_bool(expr.left, True) or _is_bool(expr.right, True):
                return Constant(_TRUE)
        return expr

    def optimize(self, node: Node) -> Node:
        def after(item: Node) -> Node:
            if isinstance(item, FilterNode) and _is_bool(item.predicate, True):
                return item.source
            return item

        return transform_node(
            node,
            lambda item: transform_node_expressions(item, self._simplify, _same),
            after,
        )


class JoinTypeOptimizer(Optimizer):
    """Turns nested loop joins on a left-right field equality into hash joins."""

    def optimize(self, node: Node) -> Node:
        def before(item: Node) -> Node:
            if not isinstance(item, NestedLoopJoinNode):
                return item
            predicate = item.predicate
            if not (
                isinstance(predicate, Equal)
                and isinstance(predicate.left, Field)
                and isinstance(predicate.right, Field)
            ):
                return item
            first, second = predicate.left, predicate.right
            if first.index < item.left_size <= second.index:
                left_field, right_field = first, second
            elif second.index < item.left_size <= first.index:
                left_field, right_field = second, first
            else:
                return item
            return HashJoinNode(
                left=item.left,
                left_field=replace(left_field),
                right=item.right,
                right_field=replace(right_field, index=right_field.index - item.left_size),
                outer=item.outer,
            )

        return transform_node(node, before, _same)


@dataclass
class Plan:
    """A plan tree ready to be optimized and executed."""

    node: Node

    def execute(self, txn: Transaction) -> ResultSet:
        """Run the plan against a transaction."""
        return build_executor(self.node).execute(txn)

    def optimize(self, catalog: Catalog) -> Plan:
        """Apply every optimizer pass in turn; returns this plan."""
        passes: List[Optimizer] = [
            ConstantFolder(),
            FilterPushdown(),
            IndexLookupOptimizer(catalog),
            NoopCleaner(),
            JoinTypeOptimizer(),
        ]
        root = self.node
        for optimizer in passes:
            root = optimizer.optimize(root)
        self.node = root
        return self