"""Error handling for the Kaleidoscope language. Only KaleidoscopeErrors should be encountered during a session: if
another type of error makes it all the way to ErrorHandler, it is assumed to be an internal issue.

Parse errors and semantic errors only ever abort the current top-level form; the session keeps going. The one fatal
error is a failure to bring up the execution engine.
"""

import sys

from termcolor import colored


class KaleidoscopeError(Exception):
    """Templates an error message so that it can be rendered by ErrorHandler. msg is a format string whose '{}' slots are
    filled with exprs, the offending source snippets (bolded when displayed).
    """

    def __init__(self, msg, exprs=None, token=None, internal=False):
        if exprs is None:
            exprs = ()
        if isinstance(exprs, str):
            exprs = (exprs,)

        self.template = msg
        self.exprs = tuple(exprs)
        self.token = token        # offending token, if known (used for line/column)
        self.internal = internal

        super().__init__(msg.format(*self.exprs))

    @property
    def msg(self):
        """Message with the offending snippets bolded."""
        return self.template.format(*(colored(expr, attrs=["bold"]) for expr in self.exprs))

    @property
    def location(self):
        """(line, col) of the offending token, or None."""
        if self.token is None:
            return None
        return self.token.line, self.token.col


class ParseError(KaleidoscopeError):
    """Raised by the parser. The current top-level form is dropped and the session skips one token."""


class PrecedenceRangeError(ParseError):
    """Declared binary operator precedence outside of 1..100."""


class SemanticError(KaleidoscopeError):
    """Raised while lowering: unknown names, arity mismatches, unknown operators, conflicting declarations."""


class ExecutionError(KaleidoscopeError):
    """Raised by the execution engine while resolving symbols or running a unit."""


class EngineError(KaleidoscopeError):
    """The execution engine could not be initialized. Always fatal."""


class ErrorHandler:
    """Context manager that suppresses errors raised inside it and renders them as one diagnostic line each."""
    ERROR = "red"
    WARNING = "magenta"
    NOTE = "cyan"

    def __init__(self, fatal=True, file=None):
        self.fatal = fatal
        self.file = file if file is not None else sys.stderr
        self.path = None
        self.errors = 0

    def register_file(self, path):
        """Registers path as the origin of the diagnostics that follow."""
        self.path = path

    def _prefix(self, error=None):
        """Returns '<path>:<line>:<col>: ' (or as much of it as is known)."""
        parts = [self.path] if self.path else []
        if error is not None and error.location is not None:
            parts.extend(str(part) for part in error.location)
        if not parts:
            return ""
        return colored(":".join(parts) + ": ", attrs=["bold"])

    def _emit(self, line):
        print(line, file=self.file)
        self.file.flush()

    def note(self, msg):
        """Prints an informational line (used for dumping lowered functions)."""
        self._emit(self._prefix() + colored("note: ", ErrorHandler.NOTE, attrs=["bold"]) + msg)

    def warn(self, *args, **kwargs):
        """Generates and prints a warning message based on args."""
        error = KaleidoscopeError(*args, **kwargs)
        self._emit(self._prefix(error) + colored("warning: ", ErrorHandler.WARNING, attrs=["bold"]) + error.msg)

    def throw(self, error):
        """Prints error, which must be a KaleidoscopeError. Exits the process if this handler is fatal."""
        error_msg = self._prefix(error)
        if error.internal:
            error_msg += colored("[internal] ", ErrorHandler.ERROR, attrs=["bold"])

        error_msg += colored("error: ", ErrorHandler.ERROR, attrs=["bold"]) + error.msg
        self._emit(error_msg)
        self.errors += 1

        if self.fatal:
            sys.exit(1)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        do_exit = False
        if exc_type is KeyboardInterrupt:
            self.throw(KaleidoscopeError("keyboard interrupt"))
        elif exc_type is SystemExit:
            do_exit = True
        elif exc_type is RecursionError:
            self.throw(ExecutionError("maximum recursion depth exceeded"))
        elif exc_type is not None and issubclass(exc_type, KaleidoscopeError):
            self.throw(exc_val)
        elif exc_type is not None:
            self.throw(KaleidoscopeError("unknown error: '{}: {}'", (exc_type.__name__, str(exc_val)), internal=True))
            do_exit = True

        return not do_exit
