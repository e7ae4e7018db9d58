"""
PropertiesManager: owns the set of Properties of one owner object.

Responsibilities:
    - declaration (eager) or materialization through a builder (lazy)
    - the initialize-once lifecycle, optionally from persisted data
    - get / set / isset / unset dispatch to the named Property
    - the manager-wide, one-way readonly switch

ARCHITECTURAL RULE:
    The readonly switch is a manager state (MUTABLE -> READONLY) checked
    before every mutating call. Property modes are never rewritten.

Iteration order is first-declared / first-materialized order, so debug and
serialized output stay deterministic even with lazy properties.
"""

import copy
import logging
import weakref
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from .exceptions import (
    AlreadyDeclared,
    AlreadyInitialized,
    Immutable,
    Inaccessible,
    InvalidProperty,
    PropertyNotFound,
    RequiredMissing,
    describe_owner,
)
from .property import MISSING, Declaration, Property, PropertyMode


logger = logging.getLogger(__name__)

Builder = Callable[[str], Union[Property, Declaration, None]]


class ManagerState(Enum):
    MUTABLE = "mutable"
    READONLY = "readonly"


class PropertiesManager:
    """
    Properties of a single owner.

    Args:
        owner: the object the properties belong to (held weakly)
        mode: base mode for declarations that do not set one
        builder: optional callable materializing properties on first reference
    """

    def __init__(self, owner: Any, mode: PropertyMode = PropertyMode.READ_WRITE,
                 builder: Optional[Builder] = None):
        self._owner_ref = weakref.ref(owner) if owner is not None else None
        self._mode = PropertyMode(mode)
        self._builder = builder
        self._properties: Dict[str, Property] = {}
        self._state = ManagerState.MUTABLE
        self._initialized = False
        self._persisted = False
        self._persisted_values: Dict[str, Any] = {}

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def owner(self) -> Any:
        return self._owner_ref() if self._owner_ref is not None else None

    @property
    def mode(self) -> PropertyMode:
        return self._mode

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def is_lazy(self) -> bool:
        return self._builder is not None

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_persisted(self) -> bool:
        return self._persisted

    @property
    def is_readonly(self) -> bool:
        return self._state is ManagerState.READONLY

    def set_all_as_readonly(self) -> "PropertiesManager":
        """Freeze every property. There is no way back."""
        if self._state is not ManagerState.READONLY:
            logger.debug("Properties of %s set as readonly", describe_owner(self.owner))
        self._state = ManagerState.READONLY
        return self

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------

    def declare(self, name: str, declaration: Optional[Declaration] = None, **options) -> Property:
        """
        Declare a property.

        Either pass a Declaration or its fields as keyword arguments.

        Raises:
            AlreadyDeclared: name already used in this manager
            AlreadyInitialized: the manager has already been initialized
        """
        if self._initialized:
            raise AlreadyInitialized(
                f"Cannot declare property {name!r} after {describe_owner(self.owner)} was initialized.",
                owner=self.owner, name=name,
            )
        if name in self._properties:
            raise AlreadyDeclared(
                f"Property {name!r} is already declared in {describe_owner(self.owner)}.",
                owner=self.owner, name=name,
            )
        if declaration is None:
            declaration = Declaration(**options)
        elif options:
            raise TypeError("Pass either a Declaration or keyword options, not both")
        prop = Property.from_declaration(name, declaration, self._mode)
        self._properties[name] = prop
        return prop

    def declare_all(self, declarations: Dict[str, Declaration]) -> "PropertiesManager":
        for name, declaration in declarations.items():
            self.declare(name, declaration)
        return self

    def set_builder(self, builder: Builder) -> "PropertiesManager":
        if self._initialized:
            raise AlreadyInitialized(
                f"Cannot set a builder after {describe_owner(self.owner)} was initialized.",
                owner=self.owner,
            )
        self._builder = builder
        return self

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, values: Optional[Dict[str, Any]] = None, persisted: bool = False,
                   remainder: bool = False) -> Dict[str, Any]:
        """
        Initialize the manager exactly once.

        Args:
            values: initial name -> value pairs
            persisted: values come from an existing data source; they are
                loaded as already set, and automatic computation is bypassed
            remainder: collect unknown names instead of failing

        Returns:
            The remaining name -> value pairs (empty unless remainder=True)

        Raises:
            AlreadyInitialized, PropertyNotFound, RequiredMissing,
            Inaccessible, InvalidValue
        """
        owner = self.owner
        if self._initialized:
            raise AlreadyInitialized(f"{describe_owner(owner)} is already initialized.", owner=owner)

        values = dict(values or {})
        rest: Dict[str, Any] = {}
        for name in list(values):
            if self._lookup(name) is None:
                if not remainder:
                    raise PropertyNotFound(
                        f"Unknown property {name!r} for {describe_owner(owner)}.",
                        owner=owner, name=name, value=values[name],
                    )
                rest[name] = values.pop(name)

        missing = [
            name for name, prop in self._properties.items()
            if prop.required and name not in values
        ]
        if missing:
            raise RequiredMissing(
                f"Missing required properties for {describe_owner(owner)}: {', '.join(missing)}.",
                owner=owner, names=missing,
            )

        # all values are checked before any is stored
        prepared: Dict[str, Any] = {}
        for name, value in values.items():
            prop = self._properties[name]
            if persisted:
                if prop.mode is PropertyMode.STRICT_READ_ONLY:
                    raise Inaccessible(
                        f"Cannot initialize strictly read-only property {name!r} of {describe_owner(owner)}.",
                        owner=owner, name=name, value=value,
                    )
                prepared[name] = prop.prepare(value, owner, loading=True)
            else:
                if prop.automatic:
                    raise Inaccessible(
                        f"Cannot initialize automatic property {name!r} of {describe_owner(owner)}; "
                        "automatic properties are only given when loading persisted data.",
                        owner=owner, name=name, value=value,
                    )
                prepared[name] = prop.prepare(value, owner, initializing=True)
        for name, value in prepared.items():
            self._properties[name].commit(value)

        self._persisted = persisted
        if persisted:
            self._persisted_values = {
                name: copy.deepcopy(value) for name, value in values.items()
            }
        self._initialized = True
        logger.debug(
            "Initialized %d properties of %s (persisted=%s, remainder=%d)",
            len(values), describe_owner(owner), persisted, len(rest),
        )
        return rest

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def has(self, name: str) -> bool:
        return self._lookup(name) is not None

    def loaded(self, name: str) -> bool:
        """True if the property is already materialized (no builder call)."""
        return name in self._properties

    def defaulted(self, name: str) -> bool:
        return self.property(name).is_defaulted()

    def names(self) -> List[str]:
        return list(self._properties)

    def property(self, name: str) -> Property:
        """Return the Property object, materializing it if needed."""
        prop = self._lookup(name)
        if prop is None:
            raise PropertyNotFound(
                f"Unknown property {name!r} for {describe_owner(self.owner)}.",
                owner=self.owner, name=name,
            )
        return prop

    def get(self, name: str, scope: Optional[type] = None) -> Any:
        return self.property(name).get(self.owner, scope)

    def isset(self, name: str, scope: Optional[type] = None) -> bool:
        prop = self._lookup(name)
        if prop is None:
            return False
        return prop.isset(self.owner, scope)

    def set(self, name: str, value: Any, scope: Optional[type] = None) -> "PropertiesManager":
        prop = self.property(name)
        self._guard_mutation(name, value)
        if not self._persisted and prop.automatic:
            raise Inaccessible(
                f"Cannot set automatic property {name!r} of {describe_owner(self.owner)} "
                "before it is persisted.",
                owner=self.owner, name=name, value=value,
            )
        prop.set(value, self.owner, scope)
        return self

    def unset(self, name: str, scope: Optional[type] = None) -> "PropertiesManager":
        prop = self.property(name)
        self._guard_mutation(name)
        if prop.required:
            raise Inaccessible(
                f"Cannot unset required property {name!r} of {describe_owner(self.owner)}.",
                owner=self.owner, name=name,
            )
        if not self._persisted and prop.automatic:
            raise Inaccessible(
                f"Cannot unset automatic property {name!r} of {describe_owner(self.owner)} "
                "before it is persisted.",
                owner=self.owner, name=name,
            )
        prop.unset(self.owner, scope)
        if name in self._persisted_values:
            prop.load(copy.deepcopy(self._persisted_values[name]), self.owner)
        return self

    def get_all(self, scope: Optional[type] = None, persisted_view: bool = False) -> Dict[str, Any]:
        """
        Return readable values as an ordered dict.

        Only materialized properties are included. Write-only, scope-bound
        (for another scope) and not yet resolvable properties are skipped;
        with persisted_view=True so are transient ones.
        """
        result: Dict[str, Any] = {}
        for name, prop in list(self._properties.items()):
            if not prop.mode.readable or not prop.is_gettable():
                continue
            if persisted_view and prop.transient:
                continue
            if prop.bound_scope is not None and (scope is None or not issubclass(scope, prop.bound_scope)):
                continue
            result[name] = prop.get(self.owner, scope)
        return result

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._properties))

    def __len__(self) -> int:
        return len(self._properties)

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    # ------------------------------------------------------------------
    # Cloning
    # ------------------------------------------------------------------

    def clone(self, owner: Any, builder: Optional[Builder] = None) -> "PropertiesManager":
        """
        Deep copy every Property into a new manager owned by `owner`.

        A builder bound to the old owner should be replaced through `builder`.
        """
        clone = copy.copy(self)
        if builder is not None:
            clone._builder = builder
        clone._owner_ref = weakref.ref(owner) if owner is not None else None
        clone._properties = {name: copy.deepcopy(prop) for name, prop in self._properties.items()}
        clone._persisted_values = copy.deepcopy(self._persisted_values)
        return clone

    def __deepcopy__(self, memo):
        return self.clone(self.owner)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lookup(self, name: str) -> Optional[Property]:
        prop = self._properties.get(name)
        if prop is not None or self._builder is None:
            return prop

        built = self._builder(name)
        if built is None:
            return None
        if isinstance(built, Declaration):
            built = Property.from_declaration(name, built, self._mode)
        elif not isinstance(built, Property):
            raise InvalidProperty(
                f"Builder for {describe_owner(self.owner)} returned {type(built).__name__} "
                f"for property {name!r}.",
                owner=self.owner, name=name,
            )
        if built.name != name:
            raise InvalidProperty(
                f"Builder for {describe_owner(self.owner)} returned property {built.name!r} "
                f"when {name!r} was requested.",
                owner=self.owner, name=name,
            )
        self._properties[name] = built
        logger.debug("Materialized property %r of %s", name, describe_owner(self.owner))
        return built

    def _guard_mutation(self, name: str, value: Any = MISSING) -> None:
        if self._state is ManagerState.READONLY:
            kwargs = {} if value is MISSING else {"value": value}
            raise Immutable(
                f"Cannot modify property {name!r} of readonly {describe_owner(self.owner)}.",
                owner=self.owner, name=name, **kwargs,
            )
