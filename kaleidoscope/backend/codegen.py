"""Code generation: lowers Kaleidoscope functions into Python closures.

Each function body becomes a closure over a call frame, a list of float slots. Parameters occupy the first slots and
every for/var induction variable gets a fresh slot of its own, so a slot index is the storage handle recorded in the
Scope. Calls are resolved by name through the execution engine at call time, which is what lets a unit call functions
committed in earlier units (or declared via extern and provided by the host).

Functions are collected in a CompilationUnit. The session commits the unit to the engine (or discards it) and asks for
a fresh one after every top-level form.
"""

import itertools
from contextlib import ExitStack

from kaleidoscope.backend.passes import FunctionPassManager
from kaleidoscope.backend.runtime import BUILTIN_BINARY_OPS, truthy
from kaleidoscope.lang.ast import BinaryExpr, CallExpr, ForExpr, IfExpr, NumberExpr, UnaryExpr, VarExpr, VariableExpr
from kaleidoscope.lang.error import ExecutionError, SemanticError
from kaleidoscope.lang.grammar import Context
from kaleidoscope.lang.scope import Scope


class Frame:
    """Slot allocator for one function. size is final once the body has been lowered."""

    def __init__(self, params=0):
        self.size = params

    def allocate(self):
        slot = self.size
        self.size += 1
        return slot


class CompiledFunction:
    """A lowered function, callable with its parameters as floats."""

    def __init__(self, proto, code, frame, body=None):
        self.proto = proto
        self.code = code
        self.frame = frame
        self.body = body  # optimized AST, kept for dumps

    @property
    def name(self):
        return self.proto.name

    def run(self, args):
        """Runs the body on a fresh frame holding args. Called directly by generated code, so a Kaleidoscope call
        costs no Python frames beyond this one and the body's closures.
        """
        frame = [float(arg) for arg in args]
        frame.extend([0.0] * (self.frame.size - len(frame)))
        return self.code(frame)

    def __call__(self, *args):
        return self.run(args)

    def __str__(self):
        return f"define {self.proto} {self.body}"

    def __repr__(self):
        return f"CompiledFunction('{self.name}')"


class CompilationUnit:
    """Functions lowered together and committed (or discarded) together, plus the prototypes declared in them."""
    _ids = itertools.count()

    def __init__(self, name=None):
        self.name = name if name is not None else f"unit{next(CompilationUnit._ids)}"
        self.functions = {}
        self.declarations = {}

    def get_prototype(self, name):
        if name in self.functions:
            return self.functions[name].proto
        return self.declarations.get(name)

    def dump(self):
        """Textual form of every declaration and definition in this unit."""
        lines = [f"declare {proto}" for proto in self.declarations.values()]
        lines.extend(str(function) for function in self.functions.values())
        return "\n".join(lines)

    def __bool__(self):
        return bool(self.functions or self.declarations)


class CodeGenerator:
    """Lowers prototypes and functions into the current CompilationUnit. resolve(name) -> callable is used at run time
    to find callees (normally ExecutionEngine.lookup).
    """

    def __init__(self, context=None, resolve=None, pipeline=None):
        self.context = context if context is not None else Context()
        self.resolve = resolve
        self.pipeline = pipeline if pipeline is not None else FunctionPassManager.default()
        self.unit = CompilationUnit()

        self._lowerings = {
            NumberExpr: self._lower_number,
            VariableExpr: self._lower_variable,
            UnaryExpr: self._lower_unary,
            BinaryExpr: self._lower_binary,
            CallExpr: self._lower_call,
            IfExpr: self._lower_if,
            ForExpr: self._lower_for,
            VarExpr: self._lower_var,
        }

    # units

    def take_unit(self):
        """Returns the current unit (to be committed) and starts a fresh one."""
        unit, self.unit = self.unit, CompilationUnit()
        return unit

    def discard_unit(self):
        """Throws away the current unit, e.g. after a lowering error."""
        self.unit = CompilationUnit()

    # declarations

    def prototype(self, name):
        """Prototype for name, from the current unit or the session registry."""
        proto = self.unit.get_prototype(name)
        return proto if proto is not None else self.context.prototypes.get(name)

    def declare_function(self, proto):
        """Declares proto (no body) in the current unit and the session registry."""
        self.context.prototypes.register(proto)
        self.unit.declarations[proto.name] = proto
        return proto

    def define_function(self, function):
        """Optimizes and lowers function into the current unit. Returns the CompiledFunction."""
        proto = function.proto
        if proto.name in self.unit.functions:
            raise SemanticError("function '{}' cannot be redefined in the same unit", proto.name)

        self.context.prototypes.register(proto)

        body = self.pipeline.run(function.body)
        frame = Frame(proto.arity)
        code = self.lower(body, Scope.from_params(proto.params), frame)

        compiled = CompiledFunction(proto, code, frame, body)
        self.unit.functions[proto.name] = compiled
        return compiled

    # lowering

    def lower(self, node, scope, frame):
        """Returns a closure frame -> float computing node. scope maps variable names to slots of frame."""
        try:
            lowering = self._lowerings[type(node)]
        except KeyError:
            raise TypeError(f"cannot lower {type(node).__name__}")
        return lowering(node, scope, frame)

    def _call(self, name):
        """Closure that resolves name at call time and applies it to already-evaluated args."""
        resolve = self.resolve
        if resolve is None:
            raise SemanticError("no symbol resolver available to call '{}'", name)

        def call(args):
            function = resolve(name)
            if isinstance(function, CompiledFunction):
                return function.run(args)
            try:
                return float(function(*args))
            except TypeError as error:
                raise ExecutionError("host call to '{}' failed: {}", (name, str(error)))
        return call

    def _lower_number(self, node, scope, frame):
        value = float(node.value)
        return lambda env: value

    def _lower_variable(self, node, scope, frame):
        slot = scope.lookup(node.name)
        if slot is None:
            raise SemanticError("unknown variable name '{}'", node.name)
        return lambda env: env[slot]

    def _lower_unary(self, node, scope, frame):
        operand = self.lower(node.operand, scope, frame)

        name = "unary" + node.op
        proto = self.prototype(name)
        if proto is None or proto.arity != 1:
            raise SemanticError("unknown unary operator '{}'", node.op)

        call = self._call(name)
        return lambda env: call([operand(env)])

    def _lower_assignment(self, node, scope, frame):
        if not isinstance(node.lhs, VariableExpr):
            raise SemanticError("destination of '=' must be a variable")

        slot = scope.lookup(node.lhs.name)
        if slot is None:
            raise SemanticError("unknown variable name '{}'", node.lhs.name)
        value = self.lower(node.rhs, scope, frame)

        def assign(env):
            env[slot] = value(env)
            return env[slot]
        return assign

    def _lower_binary(self, node, scope, frame):
        if node.op == "=":
            return self._lower_assignment(node, scope, frame)

        lhs = self.lower(node.lhs, scope, frame)
        rhs = self.lower(node.rhs, scope, frame)

        builtin = BUILTIN_BINARY_OPS.get(node.op)
        if builtin is not None:
            return lambda env: builtin(lhs(env), rhs(env))

        name = "binary" + node.op
        proto = self.prototype(name)
        if proto is None or proto.arity != 2:
            raise SemanticError("unknown binary operator '{}'", node.op)

        call = self._call(name)
        return lambda env: call([lhs(env), rhs(env)])

    def _lower_call(self, node, scope, frame):
        proto = self.prototype(node.callee)
        if proto is None:
            raise SemanticError("unknown function referenced '{}'", node.callee)
        if proto.arity != len(node.args):
            msg = "incorrect number of arguments passed to '{}': expected {}, got {}"
            raise SemanticError(msg, (node.callee, str(proto.arity), str(len(node.args))))

        args = [self.lower(arg, scope, frame) for arg in node.args]
        call = self._call(node.callee)
        return lambda env: call([arg(env) for arg in args])

    def _lower_if(self, node, scope, frame):
        cond = self.lower(node.cond, scope, frame)
        then = self.lower(node.then, scope, frame)
        else_ = self.lower(node.else_, scope, frame)
        return lambda env: then(env) if truthy(cond(env)) else else_(env)

    def _lower_for(self, node, scope, frame):
        start = self.lower(node.start, scope, frame)  # outside the loop's scope

        slot = frame.allocate()
        with scope.bound(node.var_name, slot):
            end = self.lower(node.end, scope, frame)
            step = self.lower(node.step, scope, frame) if node.step is not None else None
            body = self.lower(node.body, scope, frame)

        def loop(env):
            env[slot] = start(env)
            while True:
                body(env)
                step_value = step(env) if step is not None else 1.0
                done = not truthy(end(env))
                env[slot] += step_value
                if done:
                    return 0.0
        return loop

    def _lower_var(self, node, scope, frame):
        inits = []
        with ExitStack() as bindings:
            for name, init in node.bindings:
                # initializer is lowered before its own name is bound: 'var a = a in ...' reads the outer a
                value = self.lower(init, scope, frame) if init is not None else None
                slot = frame.allocate()
                bindings.enter_context(scope.bound(name, slot))
                inits.append((slot, value))
            body = self.lower(node.body, scope, frame)

        def var(env):
            for slot, value in inits:
                env[slot] = value(env) if value is not None else 0.0
            return body(env)
        return var
