"""
Runtime value wrappers for the Mod Script interpreter.

Scripts only ever see four kinds of value: strings, numbers, booleans and
void (the result of a call that returns nothing). How a value reads as a
condition is not fixed by the language; each dialect supplies its own
`TruthinessRules`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Iterable, Optional


class ValueKind(Enum):
    """The kinds of runtime value."""
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    VOID = "void"


@dataclass(frozen=True)
class Value:
    """
    A runtime value with its kind.

    The `data` field holds the plain Python object (str, int/float, bool or
    None for void).
    """
    data: Any
    kind: ValueKind

    def __repr__(self) -> str:
        return f"Value({self.data!r}, {self.kind.value})"

    def describe(self) -> str:
        """Short form used in error messages."""
        if self.kind == ValueKind.VOID:
            return "void"
        return f"{self.kind.value} {self.data!r}"


# Convenience constructors

def string_val(s: str) -> Value:
    """Create a string value."""
    return Value(str(s), ValueKind.STRING)


def number_val(n) -> Value:
    """Create a number value. Integral floats collapse to int."""
    if isinstance(n, float) and n.is_integer():
        n = int(n)
    return Value(n, ValueKind.NUMBER)


def bool_val(b: bool) -> Value:
    """Create a boolean value."""
    return Value(bool(b), ValueKind.BOOL)


VOID = Value(None, ValueKind.VOID)


def wrap_value(obj: Any) -> Optional[Value]:
    """
    Wrap a plain Python object returned by a host function.

    Returns None when the object has no script representation.
    """
    if isinstance(obj, Value):
        return obj
    if obj is None:
        return VOID
    # bool before int: bool is an int subclass
    if isinstance(obj, bool):
        return bool_val(obj)
    if isinstance(obj, (int, float)):
        return number_val(obj)
    if isinstance(obj, str):
        return string_val(obj)
    return None


def format_value(value: Value) -> str:
    """Text form of a value, used for string concatenation."""
    if value.kind == ValueKind.BOOL:
        return "true" if value.data else "false"
    if value.kind == ValueKind.VOID:
        return ""
    return str(value.data)


@dataclass(frozen=True)
class TruthinessRules:
    """
    How a dialect coerces values to booleans in conditions.

    Booleans are themselves and void is always false. Numbers are false when
    zero and `zero_is_false` is set. Strings are false when empty and
    `empty_string_is_false` is set, or when their case-folded text is one of
    `false_strings`.
    """
    empty_string_is_false: bool = True
    zero_is_false: bool = True
    false_strings: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_mapping(cls, data: Optional[dict]) -> "TruthinessRules":
        data = data or {}
        strings: Iterable[str] = data.get("false_strings", ())
        return cls(
            empty_string_is_false=bool(data.get("empty_string_is_false", True)),
            zero_is_false=bool(data.get("zero_is_false", True)),
            false_strings=frozenset(s.casefold() for s in strings),
        )

    def is_truthy(self, value: Value) -> bool:
        """Coerce a value to a boolean."""
        if value.kind == ValueKind.BOOL:
            return bool(value.data)
        if value.kind == ValueKind.VOID:
            return False
        if value.kind == ValueKind.NUMBER:
            return not (self.zero_is_false and value.data == 0)
        text = value.data
        if text == "":
            return not self.empty_string_is_false
        return text.casefold() not in self.false_strings


DEFAULT_TRUTHINESS = TruthinessRules()
