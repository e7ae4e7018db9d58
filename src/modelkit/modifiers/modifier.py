"""
Modifier: a named, prioritized rule wrapping a configured prototype.

Constraints validate; filters may transform. Both evaluate on a private
copy of the value, so a failing modifier never alters the caller's value.
The last failure is kept as an EvaluationError until the next evaluation
or until unset_error() is called.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..config import get_settings
from ..exceptions import (
    InvalidModifier,
    InvalidPrototype,
    PropertyNotAllowed,
    PropertyNotFound,
)
from .prototype import (
    Capability,
    ModifierKind,
    ModifierPrototype,
    PrototypeRegistry,
    registry as default_registry,
)


logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "The given value is invalid."


@dataclass(frozen=True)
class EvaluationError:
    """Why the last evaluation failed."""

    value: Any
    code: str
    message: str


class Modifier:
    """Base modifier. Use Constraint or Filter, or Modifier.build()."""

    kind: Optional[ModifierKind] = None

    def __init__(self, prototype: ModifierPrototype):
        if not isinstance(prototype, ModifierPrototype):
            raise InvalidPrototype(f"{prototype!r} is not a modifier prototype.")
        if self.kind is not None and prototype.kind is not self.kind:
            raise InvalidPrototype(
                f"Prototype {prototype.name!r} is a {prototype.kind.value}, not a {self.kind.value}.",
                name=prototype.name,
            )
        self._prototype = prototype
        self._priority = self.base_priority(prototype.kind)
        if prototype.has_capability(Capability.PRIORITY):
            self._priority += prototype.get_priority()
        self._error: Optional[EvaluationError] = None
        self._locked = False

    @staticmethod
    def base_priority(kind: ModifierKind) -> int:
        settings = get_settings()
        if kind is ModifierKind.FILTER:
            return settings.filter_priority
        return settings.constraint_priority

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def build(cls, prototype, config: Optional[Dict[str, Any]] = None,
              registry: Optional[PrototypeRegistry] = None) -> "Modifier":
        """
        Build a modifier from a prototype instance, class or registered name.

        Raises:
            InvalidPrototype: unknown name, wrong kind, or config given
                together with an already built prototype
            PropertyNotAllowed: config names a property the prototype lacks
            InvalidValue, RequiredMissing: config rejected by the prototype
        """
        if registry is None:
            registry = default_registry
        config = dict(config or {})

        if isinstance(prototype, ModifierPrototype):
            if config:
                raise InvalidPrototype(
                    f"Cannot configure already built prototype {prototype.name!r}.", name=prototype.name
                )
            instance = prototype
        else:
            if isinstance(prototype, str):
                prototype_cls = registry.resolve(cls.kind, prototype)
            elif isinstance(prototype, type) and issubclass(prototype, ModifierPrototype):
                prototype_cls = prototype
            else:
                raise InvalidPrototype(f"Cannot resolve a modifier prototype from {prototype!r}.")
            if cls.kind is not None and prototype_cls.kind is not cls.kind:
                raise InvalidPrototype(
                    f"Prototype {prototype_cls.name!r} is a {prototype_cls.kind.value}, "
                    f"not a {cls.kind.value}.",
                    name=prototype_cls.name,
                )
            try:
                instance = prototype_cls(**config)
            except PropertyNotFound as e:
                raise PropertyNotAllowed(
                    f"Property {e.name!r} is not allowed in prototype {prototype_cls.name!r}.",
                    owner=e.owner, name=e.name, value=e.value,
                ) from e

        modifier_cls = cls if cls.kind is not None else _MODIFIER_CLASSES[instance.kind]
        return modifier_cls(instance)

    @classmethod
    def from_schema(cls, schema: Dict[str, Any],
                    registry: Optional[PrototypeRegistry] = None) -> "Modifier":
        """Rebuild a modifier from get_schema() output."""
        kind = ModifierKind(schema["kind"])
        modifier_cls = _MODIFIER_CLASSES[kind]
        return modifier_cls.build(schema["name"], schema.get("data") or {}, registry)

    @staticmethod
    def coerce(modifier: Any) -> "Modifier":
        if not isinstance(modifier, Modifier):
            raise InvalidModifier(f"{modifier!r} is not a modifier.")
        return modifier

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def prototype(self) -> ModifierPrototype:
        return self._prototype

    @property
    def name(self) -> str:
        return self._prototype.name

    @property
    def code(self) -> str:
        return f"{self._prototype.kind.value}.{self._prototype.name}"

    @property
    def priority(self) -> int:
        return self._priority

    def get_priority(self) -> int:
        return self._priority

    @property
    def subtype(self) -> Optional[str]:
        return self._capability_text(Capability.SUBTYPE, "get_subtype")

    @property
    def label(self) -> Optional[str]:
        return self._capability_text(Capability.INFORMATION, "get_label")

    @property
    def message(self) -> Optional[str]:
        return self._capability_text(Capability.INFORMATION, "get_message")

    @property
    def string(self) -> Optional[str]:
        return self._capability_text(Capability.STRINGIFICATION, "get_string")

    def _capability_text(self, capability: Capability, method: str) -> Optional[str]:
        if not self._prototype.has_capability(capability):
            return None
        return getattr(self._prototype, method)()

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, value: Any) -> Tuple[Any, bool]:
        """
        Evaluate a value.

        Returns:
            (new value, True) on success, (original value, False) on failure
        """
        candidate, ok = self._prototype.process(copy.deepcopy(value))
        if not ok:
            self._error = EvaluationError(value, self.code, self._failure_message())
            logger.debug("Modifier %s rejected %r", self.code, value)
            return value, False
        self._error = None
        return candidate, True

    def _failure_message(self) -> str:
        prototype = self._prototype
        if prototype.has_capability(Capability.ERROR_MESSAGE):
            return prototype.get_error_message()
        if prototype.has_capability(Capability.INFORMATION):
            return prototype.get_message()
        return DEFAULT_ERROR_MESSAGE

    @property
    def error(self) -> Optional[EvaluationError]:
        return self._error

    @property
    def has_error(self) -> bool:
        return self._error is not None

    @property
    def error_message(self) -> Optional[str]:
        return self._error.message if self._error is not None else None

    def unset_error(self) -> "Modifier":
        if self._prototype.has_capability(Capability.ERROR_UNSET):
            self._prototype.unset_error()
        self._error = None
        return self

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def lock(self) -> "Modifier":
        """Freeze the prototype configuration; done when attached."""
        self._prototype.freeze()
        self._locked = True
        return self

    @property
    def is_locked(self) -> bool:
        return self._locked

    def clone(self) -> "Modifier":
        return copy.deepcopy(self)

    def get_schema(self) -> Dict[str, Any]:
        prototype = self._prototype
        data = prototype.get_schema_data() if prototype.has_capability(Capability.SCHEMA_DATA) else None
        return {
            "name": self.name,
            "kind": prototype.kind.value,
            "subtype": self.subtype,
            "priority": self._priority,
            "data": data,
        }

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r}, priority={self._priority})"


class Constraint(Modifier):
    kind = ModifierKind.CONSTRAINT


class Filter(Modifier):
    kind = ModifierKind.FILTER


_MODIFIER_CLASSES = {
    ModifierKind.CONSTRAINT: Constraint,
    ModifierKind.FILTER: Filter,
}
