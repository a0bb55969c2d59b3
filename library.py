"""Built-in catalog: I/O, string slicing, numeric conversions and array bounds.

Built-ins are registered by name with a fixed parameter signature. The
interpreter resolves every argument to a runtime value before the call;
parameters marked as written are the caller's own variables (passed with
`var`) and receive the result. Misuse never raises into the program: a wrong
argument count, a wrong kind or a failed conversion is reported on standard
error and the call does nothing.
"""

import logging
import math

from ast_nodes import INTEGER, REAL, STRING, ARRAY
from errors import ShankRuntimeError


logger = logging.getLogger("shank.library")
logger.addHandler(logging.NullHandler())


class Param:
    def __init__(self, kind=None, writes=False):
        self.kind = kind        # None accepts any kind
        self.writes = writes    # result is written back, caller must pass `var`


def arg(kind=None):
    return Param(kind)


def out(kind=None):
    return Param(kind, writes=True)


class Builtin:
    def __init__(self, name, params, func, variadic=False):
        self.name = name
        self.params = params
        self.func = func
        self.variadic = variadic  # every argument uses params[0]

    def signature(self):
        parts = []
        for p in self.params:
            text = p.kind or "any"
            parts.append(f"var {text}" if p.writes else text)
        if self.variadic:
            return f"{self.name}({parts[0]}...)"
        return f"{self.name}({', '.join(parts)})"

    def check(self, args):
        """Returns an error message for a bad call, or None."""
        if self.variadic:
            params = [self.params[0]] * len(args)
        else:
            params = self.params
            if len(args) != len(params):
                return f"expected {len(params)} arguments, got {len(args)}"

        for position, (param, (value, by_reference)) in enumerate(zip(params, args), start=1):
            if param.kind is not None and value.kind != param.kind:
                return f"argument {position} must be {param.kind}, got {value.kind}"
            if param.writes and not by_reference:
                return f"argument {position} must be passed with var"
        return None

    def invoke(self, interpreter, args):
        """args: list of (value, by_reference) pairs."""
        problem = self.check(args)
        if problem is None:
            try:
                self.func(interpreter, *[value for value, _ in args])
                return
            except ShankRuntimeError as e:
                problem = e.message
        logger.debug("%s rejected: %s", self.name, problem)
        interpreter.report(f"{self.signature()}: {problem}")


BUILTINS = {}


def builtin(name, *params, variadic=False):
    def register(func):
        BUILTINS[name] = Builtin(name, list(params), func, variadic)
        return func
    return register


# ---------- I/O ----------
@builtin("read", out(), variadic=True)
def read(interpreter, *targets):
    for target in targets:
        target.from_text(interpreter.read_line())


@builtin("write", arg(), variadic=True)
def write(interpreter, *values):
    interpreter.write_line(" ".join(value.to_text() for value in values))


# ---------- STRINGS ----------
@builtin("left", arg(STRING), arg(INTEGER), out(STRING))
def left(interpreter, source, length, target):
    if length.value < 0:
        raise ShankRuntimeError(f"length must not be negative, got {length.value}")
    target.from_text(source.value[:length.value])


@builtin("right", arg(STRING), arg(INTEGER), out(STRING))
def right(interpreter, source, length, target):
    if length.value < 0:
        raise ShankRuntimeError(f"length must not be negative, got {length.value}")
    text = source.value
    target.from_text(text[max(len(text) - length.value, 0):])


@builtin("substring", arg(STRING), arg(INTEGER), arg(INTEGER), out(STRING))
def substring(interpreter, source, start, length, target):
    if start.value < 0 or length.value < 0:
        raise ShankRuntimeError(f"start and length must not be negative, got {start.value} and {length.value}")
    target.from_text(source.value[start.value:start.value + length.value])


# ---------- NUMBERS ----------
@builtin("squareRoot", arg(REAL), out(REAL))
def square_root(interpreter, source, target):
    if source.value < 0:
        raise ShankRuntimeError(f"cannot take the square root of {source.to_text()}")
    target.from_text(repr(math.sqrt(source.value)))


@builtin("getRandom", out(INTEGER))
def get_random(interpreter, target):
    low, high = target.value_range or (-(2 ** 31), 2 ** 31 - 1)
    target.from_text(str(interpreter.random.randint(low, high)))


@builtin("integerToReal", out(REAL), arg(INTEGER))
def integer_to_real(interpreter, target, source):
    target.from_text(source.to_text())


@builtin("realToInteger", out(INTEGER), arg(REAL))
def real_to_integer(interpreter, target, source):
    target.from_text(source.to_text())


# ---------- ARRAYS ----------
@builtin("start", arg(ARRAY), out(INTEGER))
def array_start(interpreter, array, target):
    target.from_text(str(array.value_range[0]))


@builtin("end", arg(ARRAY), out(INTEGER))
def array_end(interpreter, array, target):
    target.from_text(str(array.value_range[1]))


def lookup(name):
    return BUILTINS.get(name)
