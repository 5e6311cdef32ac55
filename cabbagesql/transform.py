"""Generic traversal and rewriting of expression trees."""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional

from .expressions import (
    BinaryExpression,
    Constant,
    Expression,
    Field,
    UnaryExpression,
)

ExprPredicate = Callable[[Optional[Expression]], bool]
ExprFn = Callable[[Optional[Expression]], Optional[Expression]]


def walk(expr: Optional[Expression], visitor: ExprPredicate) -> bool:
    """Visit expr and then its operands, left before right.

    Returns True only if the visitor accepted every node visited. A missing
    operand or an unknown node counts as a failure. Once the left operand
    fails, the right operand is not visited.
    """
    accepted = visitor(expr)
    if isinstance(expr, BinaryExpression):
        children_ok = walk(expr.left, visitor) and walk(expr.right, visitor)
    elif isinstance(expr, UnaryExpression):
        children_ok = walk(expr.operand, visitor)
    elif isinstance(expr, (Constant, Field)):
        children_ok = True
    else:
        children_ok = False
    return accepted and children_ok


def contains(expr: Optional[Expression], predicate: ExprPredicate) -> bool:
    """True if some node of the tree satisfies predicate, or the tree has a gap."""
    return not walk(expr, lambda node: not predicate(node))


def transform(
    expr: Optional[Expression], before: ExprFn, after: ExprFn
) -> Optional[Expression]:
    """Rebuild the tree, applying before on the way down and after on the way up."""
    expr = before(expr)
    if isinstance(expr, BinaryExpression):
        expr = replace(
            expr,
            left=transform(expr.left, before, after),
            right=transform(expr.right, before, after),
        )
    elif isinstance(expr, UnaryExpression):
        expr = replace(expr, operand=transform(expr.operand, before, after))
    return after(expr)