"""
Type rules for properties.

A rule decides whether a value may be held by a property:
    - Strict rules only check. The value must already satisfy the predicate
      and is returned untouched.
    - Coercive rules may convert. The converter either returns the converted
      value or fails explicitly.

Rules are immutable and carry no state, so they can be shared freely
between properties and across cloned owners.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from .exceptions import CoercionError


class TypeRule:
    """Base class for all type rules."""

    label: str = "any"
    is_strict: bool = True

    def evaluate(self, value: Any) -> Any:
        """Return the accepted value or raise CoercionError."""
        return value


@dataclass(frozen=True)
class StrictRule(TypeRule):
    """
    Accepts a value only if it already satisfies the predicate.

    Properties:
        predicate: callable returning True for acceptable values
        label: name used in diagnostics
    """

    predicate: Callable[[Any], bool]
    label: str = "value"
    is_strict = True

    def evaluate(self, value: Any) -> Any:
        if not self.predicate(value):
            raise CoercionError(f"expected {self.label}, got {type(value).__name__}")
        return value


@dataclass(frozen=True)
class CoerciveRule(TypeRule):
    """
    Passes a value through a converter.

    The converter signals failure by raising CoercionError, ValueError or
    TypeError; all three are reported as CoercionError.
    """

    converter: Callable[[Any], Any]
    label: str = "value"
    is_strict = False

    def evaluate(self, value: Any) -> Any:
        try:
            return self.converter(value)
        except CoercionError:
            raise
        except (ValueError, TypeError) as e:
            raise CoercionError(f"cannot convert to {self.label}: {e}") from e


def any_value() -> TypeRule:
    return TypeRule()


def strict(expected) -> StrictRule:
    """
    Build a strict rule from a type, a tuple of types or a predicate.

    Booleans are never accepted where an int (or float) is expected.
    """
    if isinstance(expected, type) or isinstance(expected, tuple):
        types = expected if isinstance(expected, tuple) else (expected,)
        rejects_bool = bool not in types and any(t in (int, float) for t in types)

        def predicate(value):
            if rejects_bool and isinstance(value, bool):
                return False
            return isinstance(value, types)

        label = " or ".join(t.__name__ for t in types)
        return StrictRule(predicate, label)
    if callable(expected):
        return StrictRule(expected, getattr(expected, "__name__", "value"))
    raise TypeError(f"Cannot build a strict rule from {expected!r}")


def _to_integer(value: Any) -> int:
    if isinstance(value, bool):
        raise CoercionError("booleans are not integers")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise CoercionError(f"{value!r} has a fractional part")
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise CoercionError(f"unsupported type {type(value).__name__}")


def integer(unsigned: bool = False) -> CoerciveRule:
    def convert(value):
        result = _to_integer(value)
        if unsigned and result < 0:
            raise CoercionError(f"{result} is negative")
        return result
    return CoerciveRule(convert, "unsigned integer" if unsigned else "integer")


def floating() -> CoerciveRule:
    def convert(value):
        if isinstance(value, bool):
            raise CoercionError("booleans are not numbers")
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            return float(value.strip())
        raise CoercionError(f"unsupported type {type(value).__name__}")
    return CoerciveRule(convert, "float")


_TRUE_STRINGS = {"1", "true", "on", "yes"}
_FALSE_STRINGS = {"0", "false", "off", "no"}


def boolean() -> CoerciveRule:
    def convert(value):
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise CoercionError(f"{value!r} is not a boolean")
    return CoerciveRule(convert, "boolean")


def string(non_empty: bool = False) -> CoerciveRule:
    def convert(value):
        if isinstance(value, str):
            result = value
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            result = str(value)
        else:
            raise CoercionError(f"unsupported type {type(value).__name__}")
        if non_empty and result == "":
            raise CoercionError("empty string")
        return result
    return CoerciveRule(convert, "non-empty string" if non_empty else "string")


def array(item_rule: Optional[TypeRule] = None) -> CoerciveRule:
    """List rule; each item is evaluated with item_rule when given."""
    def convert(value):
        if isinstance(value, (str, bytes, dict)) or not hasattr(value, "__iter__"):
            raise CoercionError(f"{type(value).__name__} is not a sequence")
        items = list(value)
        if item_rule is None:
            return items
        converted = []
        for index, item in enumerate(items):
            try:
                converted.append(item_rule.evaluate(item))
            except CoercionError as e:
                raise CoercionError(f"item {index}: {e}") from e
        return converted
    label = f"array of {item_rule.label}" if item_rule is not None else "array"
    return CoerciveRule(convert, label)


def mapping() -> CoerciveRule:
    def convert(value):
        if not isinstance(value, dict):
            raise CoercionError(f"{type(value).__name__} is not a mapping")
        return dict(value)
    return CoerciveRule(convert, "mapping")
