"""Session control for the Kaleidoscope language: the read-compile-execute loop, in file mode or command-line mode.

One cycle per top-level form:
    - 'def':    the function is lowered into the current unit, the unit is committed, a fresh unit is opened
    - 'extern': the prototype is declared (registered for later calls), nothing is committed
    - other:    the expression is wrapped in a zero-argument function, compiled into its own unit, committed, run,
                printed, and the unit is removed again
    - ';':      skipped

A form that fails to parse is reported and one token is skipped; a form that fails to lower or run is reported and
its unit is discarded. Either way the loop carries on with the next form.
"""

import sys

from kaleidoscope.backend.codegen import CodeGenerator
from kaleidoscope.backend.engine import ExecutionEngine
from kaleidoscope.backend.runtime import HostRuntime
from kaleidoscope.lang.ast import ExprAST, Function, Prototype
from kaleidoscope.lang.error import ParseError
from kaleidoscope.lang.grammar import Context
from kaleidoscope.lang.lexical import TokenKind, Tokenizer
from kaleidoscope.lang.parser import Parser


class Session:
    """Governs a Kaleidoscope session: operator table, prototype registry, code generator and execution engine."""
    SH_FILE = "<in>"  # command-line interpreter filename

    def __init__(self, error_handler, path=SH_FILE, dump=False, out=None, runtime=None):
        self.error_handler = error_handler
        self.error_handler.register_file(path)

        self.path = path          # used for error messages
        self.dump = dump          # whether or not to print lowered functions
        self.out = out if out is not None else sys.stdout

        self.context = Context()
        self.engine = ExecutionEngine.create(runtime if runtime is not None else HostRuntime(error_handler.file))
        self.codegen = CodeGenerator(self.context, self.engine.lookup)

        self.results = []   # values of evaluated top-level expressions, oldest first
        self.pending = ""   # unfinished command-line input

        # from here on no error can end the session
        self.error_handler.fatal = False

    def run(self, source, partial=False):
        """Runs every top-level form in source (a string or a character stream). If partial, source must be a string;
        a form cut short by the end of source is kept in self.pending instead of being reported. Returns whether all of
        source was consumed.
        """
        parser = Parser(Tokenizer(source), self.context)

        while parser.current.kind is not TokenKind.EOF:
            start = parser.current.pos
            if not self.step(parser, partial):
                self.pending = source[start:]
                return False

        self.pending = ""
        return True

    def add(self, line):
        """Adds a command-line line to any pending input and runs what is complete. Returns False if more input is
        needed to finish the current form.
        """
        return self.run(self.pending + line + "\n", partial=True)

    def flush(self):
        """Runs pending input as-is, reporting it if it is incomplete."""
        pending, self.pending = self.pending, ""
        if pending.strip():
            self.run(pending)

    def step(self, parser, partial=False):
        """Parses and handles one top-level form. Returns False only if partial and the form is unfinished."""
        with self.error_handler:
            try:
                form = parser.parse_top_level_form()
            except ParseError as error:
                if partial and error.token is not None and error.token.kind is TokenKind.EOF:
                    return False
                parser.next_token()  # skip token for error recovery
                raise

            self.handle(form)
        return True

    def handle(self, form):
        """Dispatches a parsed top-level form."""
        if form is None:
            return
        if isinstance(form, Function):
            self.handle_definition(form)
        elif isinstance(form, Prototype):
            self.handle_extern(form)
        elif isinstance(form, ExprAST):
            self.handle_top_level_expression(form)
        else:
            raise TypeError(f"unexpected top-level form {type(form).__name__}")

    def handle_definition(self, function):
        try:
            self.codegen.define_function(function)
        except Exception:
            self.codegen.discard_unit()
            raise

        unit = self.codegen.take_unit()
        if self.dump:
            self.error_handler.note(unit.dump())
        self.engine.add_unit(unit)

    def handle_extern(self, proto):
        self.engine.check_signature(proto)
        self.codegen.declare_function(proto)
        if self.dump:
            self.error_handler.note(f"declare {proto}")

    def handle_top_level_expression(self, expr):
        """Compiles expr into its own unit, runs it, prints the result and removes the unit."""
        # anything lowered into the current unit beforehand (e.g. externs) goes along with it
        try:
            self.codegen.define_function(Function.anonymous(expr))
        except Exception:
            self.codegen.discard_unit()
            raise

        unit = self.codegen.take_unit()
        if self.dump:
            self.error_handler.note(unit.dump())

        tracker = self.engine.add_unit(unit)
        try:
            value = self.engine.invoke0(self.engine.lookup(Function.ANONYMOUS))
        finally:
            tracker.remove()

        self.results.append(value)
        print(f"Evaluated to {value:f}", file=self.out)
        return value

    def pop(self):
        """Removes and returns the most recent result."""
        return self.results.pop()
