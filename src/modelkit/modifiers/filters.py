"""
Built-in filter prototypes.

Filters transform the value they receive. They fail (returning ok=False)
when the value is of a kind they cannot transform.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..exceptions import CoercionError
from ..property import Declaration
from ..rules import CoerciveRule, boolean, integer, string
from .prototype import Capability, FilterPrototype, registry


DEFAULT_ELLIPSIS = "..."


def _timezone_name(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise CoercionError(f"{value!r} is not a timezone name")
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise CoercionError(f"unknown timezone {value!r}") from e
    return value


@registry.register
class Truncate(FilterPrototype):
    name = "truncate"
    capabilities = Capability.INFORMATION | Capability.STRINGIFICATION | Capability.SCHEMA_DATA
    declarations = {
        "length": Declaration(rule=integer(unsigned=True), required=True),
        "ellipsis": Declaration(rule=boolean(), default=False),
        "ellipsis_string": Declaration(rule=string(non_empty=True), nullable=True, default=None),
        "keep_words": Declaration(rule=boolean(), default=False),
    }

    def process_value(self, value):
        if not isinstance(value, str):
            return value, False
        return truncate(
            value, self.length,
            ellipsis=(self.ellipsis_string or DEFAULT_ELLIPSIS) if self.ellipsis else None,
            keep_words=self.keep_words,
        ), True

    def get_label(self):
        return "Truncated length"

    def get_message(self):
        unit = "character" if self.length == 1 else "characters"
        return f"The value is truncated to {self.length} {unit}."

    def get_string(self):
        return str(self.length)


def truncate(text: str, length: int, ellipsis: Optional[str] = None, keep_words: bool = False) -> str:
    """
    Cut text to at most `length` characters.

    With an ellipsis, the ellipsis counts towards the length. With
    keep_words, the cut moves back to the previous word boundary.
    """
    if len(text) <= length:
        return text
    suffix = ellipsis or ""
    if len(suffix) >= length:
        return suffix[:length]
    cut = length - len(suffix)
    head = text[:cut]
    if keep_words and not text[cut].isspace():
        boundary = head.rstrip().rfind(" ")
        if boundary > 0:
            head = head[:boundary]
    if suffix:
        head = head.rstrip()
    return head + suffix


@registry.register
class TimestampFormat(FilterPrototype):
    """
    Format a timestamp as text.

    Accepts datetime objects, epoch seconds and ISO-8601 strings. Naive
    values are taken as UTC.
    """

    name = "timestamp_format"
    capabilities = Capability.SUBTYPE | Capability.SCHEMA_DATA
    declarations = {
        "value": Declaration(rule=string(non_empty=True), required=True),
        "timezone": Declaration(rule=CoerciveRule(_timezone_name, "timezone"), nullable=True, default=None),
    }

    def process_value(self, value):
        moment = _to_datetime(value)
        if moment is None:
            return value, False
        try:
            if self.timezone is not None:
                moment = moment.astimezone(ZoneInfo(self.timezone))
            return moment.strftime(self.value), True
        except (OverflowError, ValueError):
            # shifting near datetime.min/max leaves the representable range
            return value, False

    def get_subtype(self):
        return "timestamp"


def _to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            pass
        try:
            moment = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)
