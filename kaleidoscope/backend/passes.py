"""Optimization pipeline run on every defined function before it is lowered. Passes are AST -> AST functions that
build new nodes instead of mutating the input, so the tree handed in by the parser is left untouched.

The default pipeline, in order:

    1. fold_constants      built-in arithmetic/comparison on two literals becomes a literal
    2. simplify_identities x * 1, 1 * x and x - 0 become x
    3. simplify_branches   an if on a literal condition becomes the taken branch

Only the built-in operators are folded: user-defined operators and calls may have side effects.
"""

from kaleidoscope.backend.runtime import BUILTIN_BINARY_OPS, truthy
from kaleidoscope.lang.ast import (BinaryExpr, CallExpr, ForExpr, IfExpr, NumberExpr, UnaryExpr, VarExpr,
                                   VariableExpr)


def transform(node, fn):
    """Rebuilds node bottom-up, applying fn to every rebuilt expression node."""
    if isinstance(node, UnaryExpr):
        node = UnaryExpr(node.op, transform(node.operand, fn))
    elif isinstance(node, BinaryExpr):
        node = BinaryExpr(node.op, transform(node.lhs, fn), transform(node.rhs, fn))
    elif isinstance(node, CallExpr):
        node = CallExpr(node.callee, [transform(arg, fn) for arg in node.args])
    elif isinstance(node, IfExpr):
        node = IfExpr(transform(node.cond, fn), transform(node.then, fn), transform(node.else_, fn))
    elif isinstance(node, ForExpr):
        step = transform(node.step, fn) if node.step is not None else None
        node = ForExpr(node.var_name, transform(node.start, fn), transform(node.end, fn), step,
                       transform(node.body, fn))
    elif isinstance(node, VarExpr):
        bindings = [(name, transform(init, fn) if init is not None else None) for name, init in node.bindings]
        node = VarExpr(bindings, transform(node.body, fn))
    elif isinstance(node, NumberExpr):
        node = NumberExpr(node.value)
    elif isinstance(node, VariableExpr):
        node = VariableExpr(node.name)
    else:
        raise TypeError(f"cannot transform {type(node).__name__}")
    return fn(node)


def _is_literal(node, value=None):
    return isinstance(node, NumberExpr) and (value is None or node.value == value)


def fold_constants(body):
    def fold(node):
        if isinstance(node, BinaryExpr) and node.op in BUILTIN_BINARY_OPS:
            if _is_literal(node.lhs) and _is_literal(node.rhs):
                return NumberExpr(BUILTIN_BINARY_OPS[node.op](node.lhs.value, node.rhs.value))
        return node

    return transform(body, fold)


def simplify_identities(body):
    def simplify(node):
        if not isinstance(node, BinaryExpr):
            return node
        if node.op == "*" and _is_literal(node.rhs, 1.0):
            return node.lhs
        if node.op == "*" and _is_literal(node.lhs, 1.0):
            return node.rhs
        if node.op == "-" and _is_literal(node.rhs, 0.0):
            return node.lhs
        return node

    return transform(body, simplify)


def simplify_branches(body):
    def simplify(node):
        if isinstance(node, IfExpr) and _is_literal(node.cond):
            return node.then if truthy(node.cond.value) else node.else_
        return node

    return transform(body, simplify)


class FunctionPassManager:
    """Runs a fixed sequence of passes over a function body."""
    DEFAULT_PASSES = (fold_constants, simplify_identities, simplify_branches)

    def __init__(self, passes=DEFAULT_PASSES):
        self.passes = list(passes)

    @classmethod
    def default(cls):
        return cls()

    def add_pass(self, fn):
        self.passes.append(fn)

    def run(self, body):
        """Returns the optimized copy of body."""
        for fn in self.passes:
            body = fn(body)
        return body
