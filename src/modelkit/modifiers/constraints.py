"""
Built-in constraint prototypes.

Each constraint only checks a value. Numeric constraints accept int and
float (never bool); length constraints accept strings and run after the
general constraints, through a priority offset.
"""

import re
from typing import Any, List

from ..property import Declaration
from ..rules import array, boolean, integer, strict, string
from .prototype import Capability, ConstraintPrototype, registry


LENGTH_PRIORITY = 150

_number = strict((int, float))

_INFORMATIVE = Capability.INFORMATION | Capability.STRINGIFICATION | Capability.SCHEMA_DATA


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def join_values(values: List[Any], conjunction: str = "or", quote: bool = True) -> str:
    """Render ["a", "b", "c"] as '"a", "b" or "c"'."""
    rendered = [_render(v) if quote else str(v) for v in values]
    if len(rendered) <= 1:
        return "".join(rendered)
    return f"{', '.join(rendered[:-1])} {conjunction} {rendered[-1]}"


def _render(value: Any) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    return repr(value)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


@registry.register
class Values(ConstraintPrototype):
    """Only (or, negated, never) the listed values."""

    name = "values"
    capabilities = _INFORMATIVE
    declarations = {
        "values": Declaration(rule=array(), required=True),
        "negate": Declaration(rule=boolean(), default=False),
    }

    def check_value(self, value):
        # type-exact membership, so True does not match 1
        allowed = any(type(v) is type(value) and v == value for v in self.values)
        return allowed != self.negate

    def get_label(self):
        return "Disallowed values" if self.negate else "Allowed values"

    def get_message(self):
        if self.negate:
            return f"The following values are not allowed: {self.get_string()}."
        return f"Only the following values are allowed: {self.get_string()}."

    def get_string(self):
        return join_values(self.values, "and" if self.negate else "or")


@registry.register
class Minimum(ConstraintPrototype):
    name = "minimum"
    capabilities = _INFORMATIVE
    declarations = {
        "value": Declaration(rule=_number, required=True),
        "exclusive": Declaration(rule=boolean(), default=False),
    }

    def check_value(self, value):
        if not is_number(value):
            return False
        return value > self.value if self.exclusive else value >= self.value

    def get_label(self):
        return "Minimum allowed value"

    def get_message(self):
        if self.exclusive:
            return f"Only a value greater than {self.value!r} is allowed."
        return f"Only a value greater than or equal to {self.value!r} is allowed."

    def get_string(self):
        return f"{self.value!r} (exclusive)" if self.exclusive else repr(self.value)


@registry.register
class Maximum(ConstraintPrototype):
    name = "maximum"
    capabilities = _INFORMATIVE
    declarations = {
        "value": Declaration(rule=_number, required=True),
        "exclusive": Declaration(rule=boolean(), default=False),
    }

    def check_value(self, value):
        if not is_number(value):
            return False
        return value < self.value if self.exclusive else value <= self.value

    def get_label(self):
        return "Maximum allowed value"

    def get_message(self):
        if self.exclusive:
            return f"Only a value less than {self.value!r} is allowed."
        return f"Only a value less than or equal to {self.value!r} is allowed."

    def get_string(self):
        return f"{self.value!r} (exclusive)" if self.exclusive else repr(self.value)


@registry.register
class Range(ConstraintPrototype):
    """Inclusive range by default; either bound may be exclusive."""

    name = "range"
    capabilities = _INFORMATIVE
    declarations = {
        "min_value": Declaration(rule=_number, required=True),
        "max_value": Declaration(rule=_number, required=True),
        "min_exclusive": Declaration(rule=boolean(), default=False),
        "max_exclusive": Declaration(rule=boolean(), default=False),
        "negate": Declaration(rule=boolean(), default=False),
    }

    def check_value(self, value):
        if not is_number(value):
            return False
        above = value > self.min_value if self.min_exclusive else value >= self.min_value
        below = value < self.max_value if self.max_exclusive else value <= self.max_value
        return (above and below) != self.negate

    def get_label(self):
        return "Disallowed value range" if self.negate else "Allowed value range"

    def get_message(self):
        lower, upper = repr(self.min_value), repr(self.max_value)
        if self.negate:
            below = "less than or equal to" if self.min_exclusive else "less than"
            above = "greater than or equal to" if self.max_exclusive else "greater than"
            return f"Only a value {below} {lower} or {above} {upper} is allowed."
        above = "greater than" if self.min_exclusive else "greater than or equal to"
        below = "less than" if self.max_exclusive else "less than or equal to"
        return f"Only a value {above} {lower} and {below} {upper} is allowed."

    def get_string(self):
        lower = f"{self.min_value!r} (exclusive)" if self.min_exclusive else repr(self.min_value)
        upper = f"{self.max_value!r} (exclusive)" if self.max_exclusive else repr(self.max_value)
        return f"{lower} to {upper}"


@registry.register
class Length(ConstraintPrototype):
    name = "length"
    capabilities = _INFORMATIVE | Capability.PRIORITY
    declarations = {
        "value": Declaration(rule=integer(unsigned=True), required=True),
    }

    def check_value(self, value):
        return isinstance(value, str) and len(value) == self.value

    def get_priority(self):
        return LENGTH_PRIORITY

    def get_label(self):
        return "Allowed length"

    def get_message(self):
        return f"Only exactly {_plural(self.value, 'character')} is allowed."

    def get_string(self):
        return str(self.value)


@registry.register
class LengthRange(ConstraintPrototype):
    name = "length_range"
    capabilities = _INFORMATIVE | Capability.PRIORITY
    declarations = {
        "min_value": Declaration(rule=integer(unsigned=True), required=True),
        "max_value": Declaration(rule=integer(unsigned=True), required=True),
    }

    def check_value(self, value):
        return isinstance(value, str) and self.min_value <= len(value) <= self.max_value

    def get_priority(self):
        return LENGTH_PRIORITY

    def get_label(self):
        return "Allowed lengths range"

    def get_message(self):
        return (
            f"Only between {self.min_value} and {_plural(self.max_value, 'character')} "
            "is allowed."
        )

    def get_string(self):
        return f"{self.min_value} to {self.max_value}"


@registry.register
class Wildcards(ConstraintPrototype):
    """Match against patterns where "*" stands for any run of characters."""

    name = "wildcards"
    capabilities = _INFORMATIVE
    declarations = {
        "values": Declaration(rule=array(string(non_empty=True)), required=True),
        "insensitive": Declaration(rule=boolean(), default=False),
        "negate": Declaration(rule=boolean(), default=False),
    }

    def check_value(self, value):
        if not isinstance(value, str):
            return False
        flags = re.IGNORECASE if self.insensitive else 0
        matched = any(
            re.fullmatch(re.escape(pattern).replace(r"\*", ".*"), value, flags | re.DOTALL)
            for pattern in self.values
        )
        return matched != self.negate

    def get_label(self):
        label = "Disallowed wildcard matches" if self.negate else "Allowed wildcard matches"
        return f"{label} (case-insensitive)" if self.insensitive else label

    def get_message(self):
        if self.negate:
            message = f"Only values not matching {self.get_string()} are allowed."
        else:
            message = f"Only values matching {self.get_string()} are allowed."
        message += ' The wildcard "*" matches any number of characters.'
        if self.insensitive:
            message += " Matches are case-insensitive."
        return message

    def get_string(self):
        return join_values(self.values, "and" if self.negate else "or")
