"""Runtime values of the Shank interpreter.

Every value is mutable in place: assignment and the built-ins write into an
existing value with from_text(), so a `var` argument that shares the value
object with its caller sees every write. Values created from declarations keep
the declared range and refuse text that falls outside of it.
"""

import math
import struct

from ast_nodes import INTEGER, REAL, STRING, CHARACTER, BOOLEAN, ARRAY
from errors import ShankRuntimeError


INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1


def to_single(value):
    """Rounds a Python float to the nearest single-precision value."""
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def single_text(value):
    # shortest decimal that reads back as the same single-precision value
    for digits in range(1, 10):
        text = f"{value:.{digits}g}"
        if to_single(float(text)) == value:
            break
    if not any(c in text for c in ".ein"):
        text += ".0"
    return text


class Value:
    kind = None

    def __init__(self, value, value_range=None):
        self.value_range = value_range
        self.value = None
        self.set(value)

    def set(self, value):
        self.value = value

    def to_text(self) -> str:
        return str(self.value)

    def from_text(self, text: str):
        raise NotImplementedError

    def copy(self):
        return type(self)(self.value, self.value_range)

    def check_range(self, measure, what):
        if self.value_range is None:
            return
        low, high = self.value_range
        if not low <= measure <= high:
            raise ShankRuntimeError(f"{what} {measure} outside declared range {low} to {high}")

    def __str__(self):
        return self.to_text()

    def __repr__(self):
        return f"{type(self).__name__}({self.to_text()!r})"

    def __eq__(self, other):
        return type(self) is type(other) and self.value == other.value


class IntegerValue(Value):
    kind = INTEGER

    def set(self, value):
        if not INT_MIN <= value <= INT_MAX:
            raise ShankRuntimeError(f"integer overflow: {value}")
        self.check_range(value, "integer")
        self.value = value

    def from_text(self, text):
        text = text.strip()
        try:
            number = int(text)
        except ValueError:
            # real text truncates toward zero
            try:
                real = float(text)
            except ValueError:
                raise ShankRuntimeError(f"cannot convert '{text}' to integer")
            if not math.isfinite(real):
                raise ShankRuntimeError(f"cannot convert '{text}' to integer")
            number = int(real)
        self.set(number)


class RealValue(Value):
    kind = REAL

    def set(self, value):
        value = to_single(float(value))
        self.check_range(value, "real")
        self.value = value

    def to_text(self):
        return single_text(self.value)

    def from_text(self, text):
        try:
            self.set(float(text.strip()))
        except ValueError:
            raise ShankRuntimeError(f"cannot convert '{text}' to real")


class StringValue(Value):
    kind = STRING

    def set(self, value):
        self.check_range(len(value), "string length")
        self.value = value

    def from_text(self, text):
        self.set(text)


class CharacterValue(Value):
    kind = CHARACTER

    def set(self, value):
        if len(value) != 1:
            raise ShankRuntimeError(f"character value must be exactly one character, got '{value}'")
        self.value = value

    def from_text(self, text):
        self.set(text)


class BooleanValue(Value):
    kind = BOOLEAN

    def to_text(self):
        return "true" if self.value else "false"

    def from_text(self, text):
        word = text.strip().lower()
        if word not in ("true", "false"):
            raise ShankRuntimeError(f"cannot convert '{text}' to boolean")
        self.set(word == "true")


class ArrayValue(Value):
    """Fixed-size array indexed over its inclusive declared bounds."""

    kind = ARRAY

    def __init__(self, element_kind, bounds, elements=None):
        self.element_kind = element_kind
        self.value_range = bounds
        low, high = bounds
        if elements is None:
            elements = [default_value(element_kind) for _ in range(high - low + 1)]
        self.value = elements

    def set(self, value):
        raise ShankRuntimeError("cannot assign to a whole array, assign its elements instead")

    def element(self, index):
        if not isinstance(index, IntegerValue):
            raise ShankRuntimeError(f"array index must be an integer, got {index.kind}")
        low, high = self.value_range
        if not low <= index.value <= high:
            raise ShankRuntimeError(f"array index {index.value} out of bounds {low} to {high}")
        return self.value[index.value - low]

    def to_text(self):
        return " ".join(item.to_text() for item in self.value)

    def from_text(self, text):
        self.set(text)

    def copy(self):
        return ArrayValue(self.element_kind, self.value_range, [item.copy() for item in self.value])


VALUE_TYPES = {
    INTEGER: IntegerValue,
    REAL: RealValue,
    STRING: StringValue,
    CHARACTER: CharacterValue,
    BOOLEAN: BooleanValue,
}

DEFAULTS = {
    INTEGER: 0,
    REAL: 0.0,
    STRING: "",
    CHARACTER: " ",
    BOOLEAN: False,
}


def default_value(type_tag, value_range=None, element_type=None):
    if type_tag == ARRAY:
        return ArrayValue(element_type, value_range)

    default = DEFAULTS[type_tag]
    if value_range is not None:
        # start inside the declared range
        low, high = value_range
        if type_tag in (INTEGER, REAL):
            default = min(max(default, low), high)
        elif type_tag == STRING:
            default = " " * low
    return VALUE_TYPES[type_tag](default, value_range)
