"""
Modifier prototypes and their registry.

A prototype is the rule itself (a constraint or a filter). It is configured
through its own managed properties, so configuration is type-checked the
same way as any other Structure:

    @registry.register
    class Minimum(ConstraintPrototype):
        name = "minimum"
        capabilities = Capability.INFORMATION | Capability.SCHEMA_DATA
        declarations = {
            "value": Declaration(rule=strict((int, float)), required=True),
        }

        def check_value(self, value):
            return value >= self.value

Optional behavior (labels, schema export, error message override...) is
declared up front through Capability flags. Consumers query the flags;
they never inspect the prototype's type.
"""

from dataclasses import dataclass
from enum import Enum, Flag
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import AlreadyDeclared, InvalidPrototype
from ..property import PropertyMode
from ..structure import Structure


class ModifierKind(Enum):
    CONSTRAINT = "constraint"
    FILTER = "filter"


class Capability(Flag):
    """Optional prototype behavior, declared at class definition."""

    NONE = 0
    INFORMATION = 1        # get_label(), get_message()
    STRINGIFICATION = 2    # get_string()
    SUBTYPE = 4            # get_subtype()
    SCHEMA_DATA = 8        # get_schema_data()
    ERROR_MESSAGE = 16     # get_error_message()
    ERROR_UNSET = 32       # unset_error()
    PRIORITY = 64          # get_priority()


class ModifierPrototype(Structure):
    """Base prototype. Configuration properties are write-once."""

    name: str = ""
    kind: Optional[ModifierKind] = None
    capabilities: Capability = Capability.NONE
    property_mode = PropertyMode.WRITE_ONCE

    def process(self, value: Any) -> Tuple[Any, bool]:
        """Return (value, ok). Only filters may return a different value."""
        raise NotImplementedError

    def has_capability(self, capability: Capability) -> bool:
        return bool(type(self).capabilities & capability)

    # Capability hooks. Only called when the matching flag is declared.

    def get_label(self) -> str:
        raise NotImplementedError

    def get_message(self) -> str:
        raise NotImplementedError

    def get_string(self) -> str:
        raise NotImplementedError

    def get_subtype(self) -> str:
        raise NotImplementedError

    def get_schema_data(self) -> Dict[str, Any]:
        """Configuration as plain data; enough to rebuild the prototype."""
        return self.to_dict(persisted_view=True)

    def get_error_message(self) -> str:
        raise NotImplementedError

    def unset_error(self) -> None:
        raise NotImplementedError

    def get_priority(self) -> int:
        return 0


class ConstraintPrototype(ModifierPrototype):
    """Validates only; never transforms."""

    kind = ModifierKind.CONSTRAINT

    def process(self, value: Any) -> Tuple[Any, bool]:
        return value, bool(self.check_value(value))

    def check_value(self, value: Any) -> bool:
        raise NotImplementedError


class FilterPrototype(ModifierPrototype):
    """May transform the value."""

    kind = ModifierKind.FILTER

    def process(self, value: Any) -> Tuple[Any, bool]:
        return self.process_value(value)

    def process_value(self, value: Any) -> Tuple[Any, bool]:
        raise NotImplementedError


@dataclass(frozen=True)
class PrototypeEntry:
    name: str
    kind: ModifierKind
    prototype: type
    capabilities: Capability


class PrototypeRegistry:
    """Maps (kind, name) to prototype classes."""

    def __init__(self):
        self._entries: Dict[Tuple[ModifierKind, str], PrototypeEntry] = {}

    def register(self, cls: type) -> type:
        """Register a prototype class; usable as a class decorator."""
        if not (isinstance(cls, type) and issubclass(cls, ModifierPrototype)):
            raise InvalidPrototype(f"{cls!r} is not a modifier prototype class.")
        if not cls.name or cls.kind is None:
            raise InvalidPrototype(f"Prototype {cls.__name__} must define a name and a kind.")
        key = (cls.kind, cls.name)
        if key in self._entries:
            raise AlreadyDeclared(
                f"A {cls.kind.value} prototype named {cls.name!r} is already registered.", name=cls.name
            )
        self._entries[key] = PrototypeEntry(cls.name, cls.kind, cls, cls.capabilities)
        return cls

    def entry(self, kind: ModifierKind, name: str) -> PrototypeEntry:
        try:
            return self._entries[(kind, name)]
        except KeyError:
            raise InvalidPrototype(f"No {kind.value} prototype named {name!r}.", name=name) from None

    def resolve(self, kind: Optional[ModifierKind], name: str) -> type:
        """Find a prototype class; with no kind the name must be unambiguous."""
        if kind is not None:
            return self.entry(kind, name).prototype
        matches = [e for (k, n), e in self._entries.items() if n == name]
        if len(matches) != 1:
            problem = "No" if not matches else "Ambiguous"
            raise InvalidPrototype(f"{problem} prototype named {name!r}.", name=name)
        return matches[0].prototype

    def names(self, kind: ModifierKind) -> List[str]:
        return [n for (k, n) in self._entries if k is kind]

    def __contains__(self, key: Tuple[ModifierKind, str]) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


registry = PrototypeRegistry()
