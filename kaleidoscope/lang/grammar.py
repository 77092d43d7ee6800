"""Session-wide grammar state: the binary operator precedence table and the registry of declared prototypes. Both
persist across top-level forms (everything else is rebuilt per form), and both hang off a Context owned by a single
Session rather than living at module level.

Built-in precedences (higher binds tighter):

```
=   2    ; assignment to a variable
<   10
+   20
-   20
*   40
```

User-defined `binary` operators take 30 unless a precedence in 1..100 is declared.
"""

from kaleidoscope.lang.error import PrecedenceRangeError, SemanticError


class OperatorTable:
    """Maps single ASCII symbol characters to their binary precedence."""
    BUILTINS = {"=": 2, "<": 10, "+": 20, "-": 20, "*": 40}
    DEFAULT_PRECEDENCE = 30
    MIN_PRECEDENCE = 1
    MAX_PRECEDENCE = 100

    def __init__(self, precedences=None):
        self._precedences = dict(OperatorTable.BUILTINS if precedences is None else precedences)

    def precedence(self, symbol):
        """Precedence of symbol as an infix operator, or -1 if it isn't one."""
        if not isinstance(symbol, str) or len(symbol) != 1 or not symbol.isascii():
            return -1
        precedence = self._precedences.get(symbol, -1)
        return precedence if precedence > 0 else -1

    def define(self, symbol, precedence=DEFAULT_PRECEDENCE, token=None):
        """Registers (or re-registers) symbol as a binary operator."""
        if not OperatorTable.MIN_PRECEDENCE <= precedence <= OperatorTable.MAX_PRECEDENCE:
            raise PrecedenceRangeError("invalid precedence '{}': must be 1..100", format(precedence, "g"), token=token)
        self._precedences[symbol] = int(precedence)

    def __contains__(self, symbol):
        return self.precedence(symbol) > 0

    def __repr__(self):
        return f"OperatorTable({self._precedences})"


class PrototypeRegistry:
    """Most recently declared prototype for every function name seen this session. Entries are never removed, so that
    calls across compilation units (and forward references through extern) keep resolving.
    """

    def __init__(self):
        self._prototypes = {}

    def register(self, proto):
        """Records proto. Redeclaring a name with the same arity replaces the entry; a different arity is an error and
        leaves the original in place.
        """
        existing = self._prototypes.get(proto.name)
        if existing is not None and existing.arity != proto.arity:
            msg = "conflicting declaration of '{}': previously declared with {} parameter(s), now {}"
            raise SemanticError(msg, (proto.name, str(existing.arity), str(proto.arity)))
        self._prototypes[proto.name] = proto

    def get(self, name):
        return self._prototypes.get(name)

    def __contains__(self, name):
        return name in self._prototypes

    def __len__(self):
        return len(self._prototypes)

    def __iter__(self):
        return iter(self._prototypes.values())


class Context:
    """Grammar state shared by the parser and the code generator of one session."""

    def __init__(self, operators=None, prototypes=None):
        self.operators = operators if operators is not None else OperatorTable()
        self.prototypes = prototypes if prototypes is not None else PrototypeRegistry()
