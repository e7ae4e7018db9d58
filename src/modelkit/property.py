"""
Property: a single named, type-checked, access-controlled attribute.

A Property owns its runtime value and the rules governing it:
    - mode: who may read and write, and how often
    - rule: the TypeRule a value must pass (strict or coercive)
    - nullable: whether None is accepted as-is
    - default / default_factory: lazily resolved fallback, memoized
    - automatic: value computed from the owner, only if never assigned
    - bind: the class (scope) allowed direct access
    - transient: excluded from persisted views

ARCHITECTURAL RULE:
    Mode, rule, nullability and binding are fixed once the property is
    first used. Only the value and the "has been set" state change
    afterwards.

The property keeps no reference to its manager or owner. Callers pass the
owner in, which keeps cloning a plain deep copy.
"""

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .exceptions import (
    CoercionError,
    Immutable,
    Inaccessible,
    InvalidProperty,
    InvalidValue,
    NotInitialized,
    describe_owner,
)
from .rules import TypeRule


class _Missing:
    """Singleton marker for "no value"; copies are the marker itself."""

    def __repr__(self):
        return "MISSING"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return "MISSING"


MISSING = _Missing()


class PropertyMode(Enum):
    """
    Access modes.

    Every mode but WRITE_ONLY is readable.
    """

    STRICT_READ_ONLY = "r"   # never written; value from default/automatic only
    READ_ONLY = "r+"         # written only while the manager initializes
    READ_WRITE = "rw"
    WRITE_ONLY = "w"
    WRITE_ONCE = "w-"        # exactly one successful write per lifetime

    @property
    def readable(self) -> bool:
        return self is not PropertyMode.WRITE_ONLY


@dataclass(frozen=True)
class Declaration:
    """
    Declares a property before it exists.

    This is the surface owners use to describe their fields:
        name -> Declaration(mode, rule, nullable, default, ...)

    A mode of None means "use the manager's base mode".
    """

    mode: Optional[PropertyMode] = None
    rule: Optional[TypeRule] = None
    nullable: bool = False
    default: Any = MISSING
    default_factory: Optional[Callable[[], Any]] = None
    automatic: Optional[Callable[[Any], Any]] = None
    bind: Optional[type] = None
    transient: bool = False
    required: bool = False


class Property:
    """A named attribute specification plus its runtime value."""

    def __init__(
        self,
        name: str,
        mode: PropertyMode = PropertyMode.READ_WRITE,
        rule: Optional[TypeRule] = None,
        nullable: bool = False,
        default: Any = MISSING,
        default_factory: Optional[Callable[[], Any]] = None,
        automatic: Optional[Callable[[Any], Any]] = None,
        bind: Optional[type] = None,
        transient: bool = False,
        required: bool = False,
    ):
        if not isinstance(name, str) or not name:
            raise InvalidProperty(f"Invalid property name {name!r}.", name=name)
        if default is not MISSING and default_factory is not None:
            raise InvalidProperty(
                f"Property {name!r} cannot have both a default value and a default factory.", name=name
            )
        if automatic is not None and (default is not MISSING or default_factory is not None):
            raise InvalidProperty(f"Automatic property {name!r} cannot also have a default.", name=name)

        self._name = name
        self._mode = PropertyMode(mode)
        self._rule = rule
        self._nullable = nullable
        self._default = default
        self._default_factory = default_factory
        self._automatic = automatic
        self._bind = bind
        self._transient = transient
        self._required = required

        self._value: Any = MISSING
        self._written = False
        self._default_value: Any = MISSING
        self._locked = False

    @classmethod
    def from_declaration(cls, name: str, declaration: Declaration,
                         base_mode: PropertyMode = PropertyMode.READ_WRITE) -> "Property":
        return cls(
            name,
            mode=declaration.mode or base_mode,
            rule=declaration.rule,
            nullable=declaration.nullable,
            default=declaration.default,
            default_factory=declaration.default_factory,
            automatic=declaration.automatic,
            bind=declaration.bind,
            transient=declaration.transient,
            required=declaration.required,
        )

    # ------------------------------------------------------------------
    # Definition (read-only views)
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def mode(self) -> PropertyMode:
        return self._mode

    @property
    def rule(self) -> Optional[TypeRule]:
        return self._rule

    @property
    def nullable(self) -> bool:
        return self._nullable

    @property
    def bound_scope(self) -> Optional[type]:
        return self._bind

    @property
    def transient(self) -> bool:
        return self._transient

    @property
    def required(self) -> bool:
        return self._required

    @property
    def automatic(self) -> bool:
        return self._automatic is not None

    @property
    def is_locked(self) -> bool:
        return self._locked

    def has_default(self) -> bool:
        return self._default is not MISSING or self._default_factory is not None

    def has_value(self) -> bool:
        return self._value is not MISSING

    def is_defaulted(self) -> bool:
        return not self.has_value() and self.has_default()

    def is_gettable(self) -> bool:
        return self.has_value() or self.has_default() or self.automatic

    def was_written(self) -> bool:
        return self._written

    def bind(self, scope: Optional[type]) -> "Property":
        """Restrict direct access to a class and its subclasses."""
        if self._locked:
            raise Immutable(f"Cannot rebind property {self._name!r} after first use.", name=self._name)
        self._bind = scope
        return self

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    def get(self, owner: Any = None, scope: Optional[type] = None) -> Any:
        if not self._mode.readable:
            raise Inaccessible(
                f"Cannot read write-only property {self._name!r} of {describe_owner(owner)}.",
                owner=owner, name=self._name,
            )
        self._check_scope(owner, scope)
        self._locked = True

        if self._value is not MISSING:
            return self._value
        if self._automatic is not None:
            # computed once, then treated as an assignment
            self._value = self._evaluate(self._automatic(owner), owner)
            self._written = True
            return self._value
        if self.has_default():
            return self.resolve_default(owner)
        raise NotInitialized(
            f"Property {self._name!r} of {describe_owner(owner)} has no value and no default.",
            owner=owner, name=self._name,
        )

    def resolve_default(self, owner: Any = None) -> Any:
        """Resolve the default at most once and cache it."""
        if self._default_value is MISSING:
            if self._default_factory is not None:
                raw = self._default_factory()
            elif self._default is not MISSING:
                raw = copy.deepcopy(self._default)
            else:
                raise NotInitialized(
                    f"Property {self._name!r} of {describe_owner(owner)} has no default.",
                    owner=owner, name=self._name,
                )
            self._default_value = self._evaluate(raw, owner, origin="default")
        return self._default_value

    def set(self, value: Any, owner: Any = None, scope: Optional[type] = None,
            initializing: bool = False) -> None:
        self.commit(self.prepare(value, owner, scope, initializing))

    def load(self, value: Any, owner: Any = None) -> None:
        """Store an already persisted value, bypassing mode checks."""
        self.commit(self.prepare(value, owner, loading=True))

    def prepare(self, value: Any, owner: Any = None, scope: Optional[type] = None,
                initializing: bool = False, loading: bool = False) -> Any:
        """
        Check access and evaluate a value without storing it.

        Pass the result to commit(). Loading skips the mode and scope checks.
        """
        if not loading:
            self._check_writable(owner, initializing)
            if not initializing:
                self._check_scope(owner, scope)
        return self._evaluate(value, owner)

    def commit(self, value: Any) -> None:
        """Store a value returned by prepare()."""
        self._value = value
        self._default_value = MISSING
        self._written = True
        self._locked = True

    def unset(self, owner: Any = None, scope: Optional[type] = None) -> None:
        self._check_writable(owner, False, action="unset")
        self._check_scope(owner, scope)
        self._value = MISSING
        self._default_value = MISSING

    def isset(self, owner: Any = None, scope: Optional[type] = None) -> bool:
        """
        True when a non-None value is resolvable.

        Never computes an automatic value, so asking does not count as a write.
        """
        if not self._mode.readable:
            return self._value is not MISSING and self._value is not None
        self._check_scope(owner, scope)
        if self._value is not MISSING:
            return self._value is not None
        if self.has_default():
            return self.resolve_default(owner) is not None
        return False

    def _check_writable(self, owner: Any, initializing: bool, action: str = "set") -> None:
        mode = self._mode
        if mode is PropertyMode.STRICT_READ_ONLY or (mode is PropertyMode.READ_ONLY and not initializing):
            raise Inaccessible(
                f"Cannot {action} read-only property {self._name!r} of {describe_owner(owner)}.",
                owner=owner, name=self._name,
            )
        if mode is PropertyMode.WRITE_ONCE and self._written:
            raise Immutable(
                f"Cannot {action} write-once property {self._name!r} of {describe_owner(owner)} again.",
                owner=owner, name=self._name,
            )

    def _check_scope(self, owner: Any, scope: Optional[type]) -> None:
        if self._bind is None:
            return
        if scope is None or not issubclass(scope, self._bind):
            raise Inaccessible(
                f"Property {self._name!r} of {describe_owner(owner)} is bound to "
                f"{self._bind.__name__} and cannot be accessed from "
                f"{scope.__name__ if scope is not None else 'the outside'}.",
                owner=owner, name=self._name,
            )

    def _evaluate(self, value: Any, owner: Any, origin: str = "value") -> Any:
        if value is None:
            if self._nullable:
                return None
            raise InvalidValue(
                f"Property {self._name!r} of {describe_owner(owner)} is not nullable.",
                owner=owner, name=self._name, value=value,
            )
        if self._rule is None:
            return value
        try:
            return self._rule.evaluate(value)
        except CoercionError as e:
            raise InvalidValue(
                f"Invalid {origin} {value!r} for property {self._name!r} of {describe_owner(owner)}: {e}",
                owner=owner, name=self._name, value=value, diagnostic=str(e),
            ) from e

    def __repr__(self):
        state = repr(self._value) if self._value is not MISSING else "<unset>"
        return f"Property({self._name!r}, mode={self._mode.value!r}, value={state})"
