"""
Structure: base class giving an object managed properties.

Subclasses declare their fields as a class-level mapping:

    class Account(Structure):
        declarations = {
            "id": Declaration(mode=PropertyMode.WRITE_ONCE, rule=integer()),
            "email": Declaration(rule=string(non_empty=True)),
            "nickname": Declaration(rule=string(), nullable=True, default=None),
        }

    account = Account(id=1, email="a@example.com")
    account.email = "b@example.com"
    account.id = 2            # Immutable

Declarations are merged along the MRO, so subclasses may add fields.
For open-ended field sets, set `lazy = True` and override build_property().

Attribute access from outside the class is unscoped; properties bound to a
class are reached from its own methods through _get() / _set().
"""

import copy
from typing import Any, Dict, Optional

from .exceptions import InvalidProperty, PropertyNotFound, describe_owner
from .manager import PropertiesManager
from .property import Declaration, PropertyMode


class Structure:
    """Object whose public attributes are managed properties."""

    declarations: Dict[str, Declaration] = {}
    property_mode: PropertyMode = PropertyMode.READ_WRITE
    lazy: bool = False

    def __init__(self, **values):
        self._initialize_properties(values, persisted=False)

    @classmethod
    def from_persisted(cls, data: Dict[str, Any]):
        """Build an instance from already persisted data."""
        instance = cls.__new__(cls)
        instance._initialize_properties(dict(data), persisted=True)
        return instance

    @classmethod
    def all_declarations(cls) -> Dict[str, Declaration]:
        merged: Dict[str, Declaration] = {}
        for klass in reversed(cls.__mro__):
            merged.update(klass.__dict__.get("declarations", {}))
        for name in merged:
            cls._check_name(name)
        return merged

    @classmethod
    def _check_name(cls, name: str) -> None:
        # class attributes would shadow the property on attribute access
        if name.startswith("_") or hasattr(cls, name):
            raise InvalidProperty(
                f"Property name {name!r} clashes with a member of {cls.__name__}.", name=name
            )

    def build_property(self, name: str) -> Optional[Declaration]:
        """Materialize an undeclared property; only used when lazy."""
        return None

    def _build_checked_property(self, name: str) -> Optional[Declaration]:
        declaration = self.build_property(name)
        if declaration is not None:
            self._check_name(name)
        return declaration

    def _initialize_properties(self, values: Dict[str, Any], persisted: bool) -> None:
        manager = PropertiesManager(
            self, self.property_mode, self._build_checked_property if self.lazy else None
        )
        object.__setattr__(self, "_properties", manager)
        manager.declare_all(self.all_declarations())
        manager.initialize(values, persisted=persisted)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def properties(self) -> PropertiesManager:
        return self._properties

    def has(self, name: str) -> bool:
        return self._properties.has(name)

    def isset(self, name: str) -> bool:
        return self._properties.isset(name)

    def to_dict(self, persisted_view: bool = False) -> Dict[str, Any]:
        return self._properties.get_all(persisted_view=persisted_view)

    def freeze(self):
        self._properties.set_all_as_readonly()
        return self

    @property
    def is_frozen(self) -> bool:
        return self._properties.is_readonly

    def clone(self):
        return copy.deepcopy(self)

    # scoped access for the class's own methods
    def _get(self, name: str) -> Any:
        return self._properties.get(name, scope=type(self))

    def _set(self, name: str, value: Any) -> None:
        self._properties.set(name, value, scope=type(self))

    # ------------------------------------------------------------------
    # Attribute protocol
    # ------------------------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        manager = self.__dict__.get("_properties")
        if manager is None or not manager.has(name):
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")
        return manager.get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
            return
        manager = self.__dict__.get("_properties")
        if manager is None or not manager.has(name):
            raise PropertyNotFound(
                f"Unknown property {name!r} for {describe_owner(self)}.",
                owner=self, name=name, value=value,
            )
        manager.set(name, value)

    def __delattr__(self, name: str) -> None:
        if name.startswith("_"):
            object.__delattr__(self, name)
            return
        self._properties.unset(name)

    def __getitem__(self, name: str) -> Any:
        return self._properties.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self._properties.set(name, value)

    def __contains__(self, name: str) -> bool:
        return self._properties.has(name)

    def __deepcopy__(self, memo):
        cls = type(self)
        clone = cls.__new__(cls)
        memo[id(self)] = clone
        for key, value in self.__dict__.items():
            if key != "_properties":
                object.__setattr__(clone, key, copy.deepcopy(value, memo))
        object.__setattr__(
            clone, "_properties",
            self._properties.clone(clone, clone._build_checked_property if self.lazy else None),
        )
        return clone

    def __repr__(self):
        fields = ", ".join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"{type(self).__name__}({fields})"
