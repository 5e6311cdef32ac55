"""Normal forms of boolean expressions and index lookup extraction."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .expressions import And, Constant, Equal, Expression, Field, IsNull, Not, Or
from .transform import transform
from .value import DataType, Value
from .expressions import ColumnField


def _identity(expr: Optional[Expression]) -> Optional[Expression]:
    return expr


def into_nnf(expr: Optional[Expression]) -> Optional[Expression]:
    """Push negations down to the leaves (negation normal form)."""

    def rewrite(node: Optional[Expression]) -> Optional[Expression]:
        if isinstance(node, Not):
            inner = node.operand
            if isinstance(inner, And):
                return Or(Not(inner.left), Not(inner.right))
            if isinstance(inner, Or):
                return And(Not(inner.left), Not(inner.right))
            if isinstance(inner, Not):
                return inner.operand
        return node

    return transform(expr, rewrite, _identity)


def into_cnf(expr: Optional[Expression]) -> Optional[Expression]:
    """Rewrite ORs over ANDs into ANDs at the top, after converting to NNF."""

    def rewrite(node: Optional[Expression]) -> Optional[Expression]:
        if isinstance(node, Or):
            if isinstance(node.left, And):
                inner = node.left
                return And(Or(inner.left, inner.right), node.right)
            if isinstance(node.right, And):
                inner = node.right
                return And(inner.left, Or(inner.left, inner.right))
            return Or(node.left, node.right)
        return node

    return transform(into_nnf(expr), rewrite, _identity)


def into_cnf_list(expr: Optional[Expression]) -> List[Optional[Expression]]:
    """Split the conjunctive form of expr into its conjuncts, left to right."""
    conjuncts: List[Optional[Expression]] = []
    stack = [into_cnf(expr)]
    while stack:
        node = stack.pop()
        if isinstance(node, And):
            stack.append(node.right)
            stack.append(node.left)
        else:
            conjuncts.append(node)
    return conjuncts


def into_dnf(expr: Optional[Expression]) -> Optional[Expression]:
    """Rewrite ANDs over ORs into ORs at the top, after converting to NNF."""

    def rewrite(node: Optional[Expression]) -> Optional[Expression]:
        if isinstance(node, And):
            if isinstance(node.left, Or):
                inner = node.left
                return Or(And(inner.left, node.right), And(inner.right, node.right))
            if isinstance(node.right, And):
                inner = node.right
                return Or(And(node.left, inner.right), And(node.left, inner.right))
            return And(node.left, node.right)
        return node

    return transform(into_nnf(expr), rewrite, _identity)


def into_dnf_list(expr: Optional[Expression]) -> List[Optional[Expression]]:
    """Return the disjunctive form as a one-element list, or empty if it is an AND."""
    node = into_dnf(expr)
    if isinstance(node, And):
        return []
    return [node]


def _fold(items: Sequence[Optional[Expression]]) -> Optional[Expression]:
    if not items:
        return None
    result = items[-1]
    for item in items[:-1]:
        result = And(result, item)
    return result


def from_cnf_list(cnf_list: Sequence[Optional[Expression]]) -> Optional[Expression]:
    """Join conjuncts with AND, starting from the last; None if there are none."""
    return _fold(cnf_list)


def from_dnf_list(dnf_list: Sequence[Optional[Expression]]) -> Optional[Expression]:
    """Combine a list of terms the same way as from_cnf_list; None if empty."""
    return _fold(dnf_list)


def as_lookup(expr: Optional[Expression], field: int) -> Optional[List[Value]]:
    """Return the values expr pins the given field to, or None if it does not."""
    if isinstance(expr, Equal):
        left, right = expr.left, expr.right
        if isinstance(left, Field) and isinstance(right, Constant) and left.index == field:
            return [right.value]
        if isinstance(left, Constant) and isinstance(right, Field) and right.index == field:
            return [left.value]
        return None
    if isinstance(expr, IsNull):
        operand = expr.operand
        if isinstance(operand, Field) and operand.index == field:
            return [Value(DataType.NULL)]
        return None
    if isinstance(expr, Or):
        left_values = as_lookup(expr.left, field)
        right_values = as_lookup(expr.right, field)
        if left_values is not None and right_values is not None:
            return left_values + right_values
        return None
    return None


def from_lookup(
    field: int, label: Optional[ColumnField], values: Sequence[Value]
) -> Optional[Expression]:
    """Build an expression matching the field against the given values."""
    if not values:
        return Equal(Field(field, label), Constant(Value(DataType.NULL)))
    return from_dnf_list([Equal(Field(field, label), Constant(value)) for value in values])