import logging
import math
import operator
import random
import sys

import library
from ast_nodes import (
    IntegerLiteral, RealLiteral, StringLiteral, CharLiteral, BooleanLiteral,
    VariableReference, BinaryArithmetic, BooleanCompare,
    Assignment, IfChain, While, Repeat, For, Call,
    ARRAY, INTEGER, REAL,
)
from errors import ShankRuntimeError
from values import (
    IntegerValue, RealValue, StringValue, CharacterValue, BooleanValue, ArrayValue, default_value,
)


logger = logging.getLogger("shank.interpreter")
logger.addHandler(logging.NullHandler())


ORDERING = {
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
}


class Activation:
    """Local environment of one function call: name -> runtime value."""

    def __init__(self, function):
        self.function = function
        self.variables = {}
        self.constants = set()

    def declare(self, name, value, constant=False):
        self.variables[name] = value
        if constant:
            self.constants.add(name)


class Interpreter:
    MAX_CALL_DEPTH = 500

    def __init__(self, program, stdin=None, stdout=None, stderr=None, seed=None, max_call_depth=None):
        self.program = program
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr
        self.random = random.Random(seed)
        self.max_call_depth = self.MAX_CALL_DEPTH if max_call_depth is None else max_call_depth
        self.call_stack = []  # names of active functions, outermost first

    def run(self, entry="start"):
        function = self.program.get(entry)
        if function is None:
            raise ShankRuntimeError(f"No function named '{entry}' to run")
        self.interpret_function(function)

    def interpret_function(self, function, arguments=None):
        """Runs one activation of function. arguments is a list of
        (value, by_reference) pairs, one per formal parameter."""
        if self.call_stack:
            self.activate(function, arguments or [])
            return

        try:
            self.activate(function, arguments or [])
        except RecursionError:
            raise ShankRuntimeError("host call stack exhausted (recursion too deep)", frames=[function.name])

    def activate(self, function, arguments):
        if len(self.call_stack) >= self.max_call_depth:
            raise ShankRuntimeError(f"maximum call depth exceeded ({self.max_call_depth})")

        frame = Activation(function)
        self.bind_parameters(frame, function, arguments)
        for decl in function.locals:
            frame.declare(decl.name, self.declared_value(decl), constant=decl.is_constant)

        self.call_stack.append(function.name)
        logger.debug("enter %s (depth %d)", function.name, len(self.call_stack))
        try:
            self.interpret_block(frame, function.body)
        except ShankRuntimeError as e:
            if not e.frames:
                e.frames = self.call_stack[::-1]
            raise
        finally:
            self.call_stack.pop()

    def bind_parameters(self, frame, function, arguments):
        formals = function.parameters
        if len(arguments) != len(formals):
            raise ShankRuntimeError(
                f"{function.name} expects {len(formals)} arguments, got {len(arguments)}"
            )

        for formal, (value, by_reference) in zip(formals, arguments):
            if value.kind != formal.type_tag:
                raise ShankRuntimeError(
                    f"argument '{formal.name}' of {function.name} must be {formal.type_tag}, got {value.kind}"
                )
            if formal.is_var:
                if not by_reference:
                    raise ShankRuntimeError(f"argument '{formal.name}' of {function.name} must be passed with var")
                frame.declare(formal.name, value)
            elif value.kind == ARRAY:
                frame.declare(formal.name, value.copy())
            else:
                local = self.declared_value(formal)
                local.from_text(value.to_text())
                frame.declare(formal.name, local)

    def declared_value(self, decl):
        if decl.is_constant:
            return self.evaluate(None, decl.initial)
        return default_value(decl.type_tag, decl.value_range, decl.element_type)

    # ---------- STATEMENTS ----------
    def interpret_block(self, frame, statements):
        for statement in statements:
            try:
                self.execute(frame, statement)
            except ShankRuntimeError as e:
                if e.line is None:
                    e.line = statement.line
                raise

    def execute(self, frame, node):
        if isinstance(node, Assignment):
            self.assignment(frame, node)
        elif isinstance(node, IfChain):
            self.if_chain(frame, node)
        elif isinstance(node, While):
            while self.condition(frame, node.condition):
                self.interpret_block(frame, node.body)
        elif isinstance(node, Repeat):
            # post-test: the body always runs once, and stops once the condition holds
            while True:
                self.interpret_block(frame, node.body)
                if self.condition(frame, node.condition):
                    break
        elif isinstance(node, For):
            self.for_loop(frame, node)
        elif isinstance(node, Call):
            self.call(frame, node)
        else:
            raise ShankRuntimeError(f"Unknown statement: {type(node).__name__}")

    def assignment(self, frame, node):
        name = node.target.name
        if name in frame.constants:
            raise ShankRuntimeError(f"cannot assign to constant '{name}'")

        target = self.lookup(frame, node.target)
        value = self.evaluate(frame, node.value)
        # assignment re-encodes through text, so the target keeps its own kind
        target.from_text(value.to_text())

    def if_chain(self, frame, node):
        for branch in node.branches:
            if branch.condition is None or self.condition(frame, branch.condition):
                self.interpret_block(frame, branch.body)
                return

    def for_loop(self, frame, node):
        start = self.evaluate(frame, node.start)
        end = self.evaluate(frame, node.end)
        if start.kind != end.kind or start.kind not in (INTEGER, REAL):
            raise ShankRuntimeError(
                f"for loop bounds must both be integer or both be real, got {start.kind} and {end.kind}"
            )
        if node.variable.name in frame.constants:
            raise ShankRuntimeError(f"cannot use constant '{node.variable.name}' as a loop variable")

        # bounds are read once, the body may change the variables they came from
        counter_type = type(start)
        variable = self.lookup(frame, node.variable)
        counter, high = start.value, end.value
        while counter <= high:
            variable.from_text(counter_type(counter).to_text())
            self.interpret_block(frame, node.body)
            counter += 1

    def call(self, frame, node):
        arguments = self.resolve_arguments(frame, node)

        builtin = library.lookup(node.name)
        if builtin is not None:
            logger.debug("builtin %s (%d args)", node.name, len(arguments))
            builtin.invoke(self, arguments)
            return

        function = self.program.get(node.name)
        if function is None:
            raise ShankRuntimeError(f"Undefined function: {node.name}")
        self.interpret_function(function, arguments)

    def resolve_arguments(self, frame, node):
        arguments = []
        for param in node.parameters:
            if param.by_reference:
                name = param.value.name
                if name in frame.constants:
                    raise ShankRuntimeError(f"constant '{name}' cannot be passed with var")
                arguments.append((self.lookup(frame, param.value), True))
            else:
                arguments.append((self.evaluate(frame, param.value), False))
        return arguments

    # ---------- EXPRESSIONS ----------
    def condition(self, frame, node):
        value = self.evaluate(frame, node)
        if not isinstance(value, BooleanValue):
            raise ShankRuntimeError(f"condition must be boolean, got {value.kind}")
        return value.value

    def evaluate(self, frame, node):
        if isinstance(node, IntegerLiteral):
            return IntegerValue(node.value)
        if isinstance(node, RealLiteral):
            return RealValue(node.value)
        if isinstance(node, StringLiteral):
            return StringValue(node.value)
        if isinstance(node, CharLiteral):
            return CharacterValue(node.value)
        if isinstance(node, BooleanLiteral):
            return BooleanValue(node.value)
        if isinstance(node, VariableReference):
            return self.lookup(frame, node)
        if isinstance(node, BinaryArithmetic):
            left = self.evaluate(frame, node.left)
            right = self.evaluate(frame, node.right)
            return self.arithmetic(node.op, left, right)
        if isinstance(node, BooleanCompare):
            left = self.evaluate(frame, node.left)
            right = self.evaluate(frame, node.right)
            return BooleanValue(self.compare(node.op, left, right))
        raise ShankRuntimeError(f"Invalid expression: {type(node).__name__}")

    def lookup(self, frame, ref):
        value = frame.variables.get(ref.name) if frame is not None else None
        if value is None:
            raise ShankRuntimeError(f"Variable '{ref.name}' does not exist or wasn't declared")
        if ref.index is not None:
            if not isinstance(value, ArrayValue):
                raise ShankRuntimeError(f"'{ref.name}' is not an array")
            value = value.element(self.evaluate(frame, ref.index))
        return value

    def arithmetic(self, op, left, right):
        # text on either side turns the operation into concatenation
        if isinstance(left, StringValue) or isinstance(right, StringValue):
            return StringValue(left.to_text() + right.to_text())

        if isinstance(left, IntegerValue) and isinstance(right, IntegerValue):
            a, b = left.value, right.value
            if op == "+":
                return IntegerValue(a + b)
            if op == "-":
                return IntegerValue(a - b)
            if op == "*":
                return IntegerValue(a * b)
            if b == 0:
                raise ShankRuntimeError("Division by zero" if op == "/" else "Modulus by zero")
            quotient = truncated_divide(a, b)
            if op == "/":
                return IntegerValue(quotient)
            return IntegerValue(a - b * quotient)

        if isinstance(left, RealValue) and isinstance(right, RealValue):
            a, b = left.value, right.value
            if op == "+":
                return RealValue(a + b)
            if op == "-":
                return RealValue(a - b)
            if op == "*":
                return RealValue(a * b)
            if b == 0:
                raise ShankRuntimeError("Division by zero" if op == "/" else "Modulus by zero")
            if op == "/":
                return RealValue(a / b)
            return RealValue(math.fmod(a, b))

        raise ShankRuntimeError(f"cannot apply '{op}' to {left.kind} and {right.kind}")

    def compare(self, op, left, right):
        if left.kind != right.kind:
            raise ShankRuntimeError(f"cannot compare {left.kind} with {right.kind}")

        if op == "=":
            return left == right
        if op == "<>":
            return not left == right

        if left.kind not in (INTEGER, REAL):
            raise ShankRuntimeError(f"'{op}' comparison can only be done on integers or reals, got {left.kind}")
        return ORDERING[op](left.value, right.value)

    # ---------- I/O used by the built-ins ----------
    def read_line(self):
        line = self.stdin.readline()
        return line.rstrip("\r\n")

    def write_line(self, text):
        print(text, file=self.stdout)

    def report(self, message):
        print(message, file=self.stderr)


def truncated_divide(a, b):
    # integer division rounding toward zero
    quotient = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        return -quotient
    return quotient


def interpret(program, entry="start", **options):
    Interpreter(program, **options).run(entry)
