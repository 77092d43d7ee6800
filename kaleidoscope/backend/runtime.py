"""Runtime semantics shared by the optimizer and the code generator, plus the host symbols that user code can reach
through `extern` (putchard, printd and a handful of C math functions).

Host math functions follow C rather than Python: a domain error gives NaN and an overflow gives infinity instead of an
exception.
"""

import functools
import math
import sys


def truthy(value):
    """Ordered-and-not-equal to 0.0: NaN counts as false."""
    return value == value and value != 0.0


def less_than(lhs, rhs):
    """Unordered-or-less-than: NaN on either side compares true."""
    return 0.0 if lhs >= rhs else 1.0


BUILTIN_BINARY_OPS = {
    "+": lambda lhs, rhs: lhs + rhs,
    "-": lambda lhs, rhs: lhs - rhs,
    "*": lambda lhs, rhs: lhs * rhs,
    "<": less_than,
}


def _c_math(fn, domain_default=math.nan):
    """Wraps fn so domain errors return domain_default and overflows return infinity."""

    @functools.wraps(fn)
    def wrapped(*args):
        try:
            return float(fn(*args))
        except ValueError:
            return domain_default(*args) if callable(domain_default) else domain_default
        except OverflowError:
            return math.inf

    return wrapped


def _log(x):
    """Natural logarithm only: C log takes no base."""
    return math.log(x)


def _log_domain(x):
    return -math.inf if x == 0.0 else math.nan


def _pow_domain(x, y):
    return math.inf if x == 0.0 and y < 0 else math.nan


class HostRuntime:
    """Symbols exported by the host process. stream receives the output of putchard/printd."""

    def __init__(self, stream=None):
        self.stream = stream

    @property
    def out(self):
        return self.stream if self.stream is not None else sys.stderr

    def putchard(self, x):
        """Writes the character with code x, returns 0."""
        self.out.write(chr(int(x) % 256))
        self.out.flush()
        return 0.0

    def printd(self, x):
        """Writes x as '%f' followed by a newline, returns 0."""
        self.out.write(f"{x:f}\n")
        self.out.flush()
        return 0.0

    def symbols(self):
        """Name -> callable for every exported symbol."""
        return {
            "putchard": self.putchard,
            "printd": self.printd,
            "sin": _c_math(math.sin),
            "cos": _c_math(math.cos),
            "tan": _c_math(math.tan),
            "atan": _c_math(math.atan),
            "sqrt": _c_math(math.sqrt),
            "exp": _c_math(math.exp),
            "log": _c_math(_log, _log_domain),
            "fabs": _c_math(math.fabs),
            "floor": _c_math(math.floor),
            "pow": _c_math(math.pow, _pow_domain),
        }
