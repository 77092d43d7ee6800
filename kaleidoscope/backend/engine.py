"""Execution engine: holds the compilation units committed so far and resolves symbols against them (newest unit
first), then against the host runtime. Units added for a single top-level expression are removed again once the
expression has been evaluated.
"""

import inspect
import sys

from kaleidoscope.backend.runtime import HostRuntime
from kaleidoscope.lang.error import EngineError, ExecutionError, SemanticError


class ResourceTracker:
    """Handle for a committed unit. Removing it drops the unit's symbols from the engine."""

    def __init__(self, engine, unit):
        self.engine = engine
        self.unit = unit

    def remove(self):
        self.engine.remove(self)


class ExecutionEngine:
    RECURSION_LIMIT = 10000  # Python frames; a Kaleidoscope call takes about four

    def __init__(self, host_symbols):
        self.host_symbols = dict(host_symbols)
        self.trackers = []  # committed units, oldest first

    @classmethod
    def create(cls, runtime=None):
        """Builds an engine exporting runtime's host symbols. Raises EngineError if they are unusable."""
        if runtime is None:
            runtime = HostRuntime()

        try:
            symbols = runtime.symbols()
        except AttributeError:
            raise EngineError("host runtime '{}' does not export any symbols", type(runtime).__name__)

        for name, symbol in symbols.items():
            if not callable(symbol):
                raise EngineError("host symbol '{}' is not callable", name)
        return cls(symbols)

    def add_unit(self, unit):
        """Commits unit; its functions shadow any earlier definition of the same name."""
        tracker = ResourceTracker(self, unit)
        self.trackers.append(tracker)
        return tracker

    def remove(self, tracker):
        """Drops a previously added unit. Removing twice is an error."""
        try:
            self.trackers.remove(tracker)
        except ValueError:
            raise ExecutionError("unit '{}' is not loaded", tracker.unit.name)

    def lookup(self, name):
        """Returns the callable for symbol name."""
        for tracker in reversed(self.trackers):
            function = tracker.unit.functions.get(name)
            if function is not None:
                return function

        symbol = self.host_symbols.get(name)
        if symbol is None:
            raise ExecutionError("symbol '{}' not found", name)
        return symbol

    def check_signature(self, proto):
        """Raises SemanticError if proto cannot be called with the host symbol it would bind to. Names defined in a
        unit, unknown names and symbols without an introspectable signature are accepted.
        """
        if any(proto.name in tracker.unit.functions for tracker in self.trackers):
            return
        symbol = self.host_symbols.get(proto.name)
        if symbol is None:
            return

        try:
            signature = inspect.signature(symbol)
        except (TypeError, ValueError):
            return
        try:
            signature.bind(*proto.params)
        except TypeError:
            msg = "extern '{}' with {} parameter(s) does not match the host symbol '{}{}'"
            raise SemanticError(msg, (proto.name, str(proto.arity), proto.name, str(signature)))

    def invoke0(self, function):
        """Runs a zero-argument function and returns its float result. The recursion limit is raised for the
        duration of the call.
        """
        previous_limit = sys.getrecursionlimit()
        sys.setrecursionlimit(max(previous_limit, ExecutionEngine.RECURSION_LIMIT))
        try:
            return float(function())
        except (ValueError, OverflowError, ZeroDivisionError) as error:
            raise ExecutionError("invalid value during execution: {}", str(error))
        finally:
            sys.setrecursionlimit(previous_limit)

    def __contains__(self, name):
        try:
            self.lookup(name)
        except ExecutionError:
            return False
        return True
