"""Abstract syntax tree for the Kaleidoscope language.

The node set is closed: every expression is one of EXPR_NODES, and the code generator lowers them with a single
dispatching function rather than per-node methods. Every node owns its children outright (the AST is a tree, never a
graph), and nodes print as s-expressions:

```
1 + 2 * 3              ->  (+ 1 (* 2 3))
for i = 1, n in f(i)   ->  (for i 1 n (f i))
def binary | 5 (a b)   ->  (def (binary| a b) ...)
```
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


class ExprAST:
    """Superclass for all expression nodes."""


def _number(value):
    return format(value, "g")


@dataclass
class NumberExpr(ExprAST):
    value: float

    def __str__(self):
        return _number(self.value)


@dataclass
class VariableExpr(ExprAST):
    name: str

    def __str__(self):
        return self.name


@dataclass
class UnaryExpr(ExprAST):
    op: str
    operand: ExprAST

    def __str__(self):
        return f"({self.op} {self.operand})"


@dataclass
class BinaryExpr(ExprAST):
    op: str
    lhs: ExprAST
    rhs: ExprAST

    def __str__(self):
        return f"({self.op} {self.lhs} {self.rhs})"


@dataclass
class CallExpr(ExprAST):
    callee: str
    args: List[ExprAST] = field(default_factory=list)

    def __str__(self):
        return "(" + " ".join([self.callee] + [str(arg) for arg in self.args]) + ")"


@dataclass
class IfExpr(ExprAST):
    cond: ExprAST
    then: ExprAST
    else_: ExprAST

    def __str__(self):
        return f"(if {self.cond} {self.then} {self.else_})"


@dataclass
class ForExpr(ExprAST):
    """for var_name = start, end[, step] in body. step is None when omitted (lowered as 1.0)."""
    var_name: str
    start: ExprAST
    end: ExprAST
    step: Optional[ExprAST]
    body: ExprAST

    def __str__(self):
        step = f" {self.step}" if self.step is not None else ""
        return f"(for {self.var_name} {self.start} {self.end}{step} {self.body})"


@dataclass
class VarExpr(ExprAST):
    """var a = 1, b in body. Each binding is (name, initializer or None)."""
    bindings: List[Tuple[str, Optional[ExprAST]]]
    body: ExprAST

    def __str__(self):
        bindings = " ".join(f"({name} {init})" if init is not None else name for name, init in self.bindings)
        return f"(var ({bindings}) {self.body})"


EXPR_NODES = (NumberExpr, VariableExpr, UnaryExpr, BinaryExpr, CallExpr, IfExpr, ForExpr, VarExpr)


@dataclass
class Prototype:
    """A function's name and parameter names. Operator prototypes are named 'unary<c>' or 'binary<c>' and take exactly
    one or two parameters respectively; precedence is only meaningful for binary operators.
    """
    name: str
    params: List[str] = field(default_factory=list)
    is_operator: bool = False
    precedence: int = 0

    @property
    def arity(self):
        return len(self.params)

    @property
    def is_unary_op(self):
        return self.is_operator and self.arity == 1

    @property
    def is_binary_op(self):
        return self.is_operator and self.arity == 2

    @property
    def operator_name(self):
        """The operator's symbol character ('|' for 'binary|')."""
        assert self.is_operator, f"'{self.name}' is not an operator prototype"
        return self.name[-1]

    def __str__(self):
        return "(" + " ".join([self.name] + self.params) + ")"


@dataclass
class Function:
    proto: Prototype
    body: ExprAST

    ANONYMOUS = "__anon_expr"

    @classmethod
    def anonymous(cls, body):
        """Wraps a bare top-level expression in a zero-argument function."""
        return cls(Prototype(cls.ANONYMOUS), body)

    @property
    def name(self):
        return self.proto.name

    def __str__(self):
        return f"(def {self.proto} {self.body})"
