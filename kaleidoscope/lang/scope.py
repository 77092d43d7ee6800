"""Lexical scope for lowering a function body. Maps variable names to storage handles (the code generator uses frame
slot indices). Bindings are kept as one stack per name, so entering a for/var body pushes and leaving it pops, which
puts back whatever the name meant before (or unbinds it if it meant nothing).
"""

from contextlib import contextmanager


class Scope:
    """Name -> storage handle mapping with strict push/pop discipline per name."""

    def __init__(self):
        self._bindings = {}

    @classmethod
    def from_params(cls, params):
        """Scope for a function body: parameter i lives in handle i."""
        scope = cls()
        for handle, name in enumerate(params):
            scope.push(name, handle)
        return scope

    def lookup(self, name):
        """Innermost handle bound to name, or None."""
        stack = self._bindings.get(name)
        return stack[-1] if stack else None

    def push(self, name, handle):
        """Shadows any existing binding of name with handle."""
        self._bindings.setdefault(name, []).append(handle)

    def pop(self, name):
        """Drops the innermost binding of name, restoring the previous one. Returns the dropped handle."""
        stack = self._bindings.get(name)
        if not stack:
            raise KeyError(name)

        handle = stack.pop()
        if not stack:
            del self._bindings[name]
        return handle

    @contextmanager
    def bound(self, name, handle):
        """Binds name to handle for the duration of the with block."""
        self.push(name, handle)
        try:
            yield handle
        finally:
            self.pop(name)

    def depth(self, name):
        """Number of live bindings of name (0 if unbound)."""
        return len(self._bindings.get(name, ()))

    def __contains__(self, name):
        return name in self._bindings

    def __repr__(self):
        return f"Scope({ {name: stack[-1] for name, stack in self._bindings.items()} })"
