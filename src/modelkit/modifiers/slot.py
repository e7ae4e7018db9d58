"""
ValueSlot: one value guarded by a type rule and a modifier pipeline.

    slot = ValueSlot("username", rule=string())
    slot.add_filter("truncate", length=12)
    slot.add_constraint("length_range", min_value=3, max_value=12)
    slot.set_value("  ")        # raises InvalidValue with a ValidationResult

Modifiers may only be added while no value is set.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..exceptions import AlreadyInitialized, CoercionError, InvalidValue, NotInitialized
from ..property import MISSING
from ..rules import TypeRule
from .modifier import Constraint, Filter, Modifier
from .pipeline import ModifierFailure, ModifierPipeline
from .prototype import PrototypeRegistry


DEFAULT_ERROR_MESSAGE = "The given value is invalid."
NULL_ERROR_MESSAGE = "A value is required."


@dataclass
class ValidationResult:
    """
    Why a value was rejected by a slot.

    Properties:
        name: slot name
        value: the rejected value, as given
        message: overall message
        failures: failing modifiers of the stopping priority group (if any)
    """

    name: str
    value: Any
    message: str
    failures: List[ModifierFailure] = field(default_factory=list)

    @property
    def messages(self) -> List[str]:
        return [f.message for f in self.failures] or [self.message]


class ValueSlot:
    """A single validated value."""

    def __init__(self, name: str, rule: Optional[TypeRule] = None, nullable: bool = False,
                 registry: Optional[PrototypeRegistry] = None):
        self.name = name
        self.rule = rule
        self.nullable = nullable
        self._registry = registry
        self._pipeline = ModifierPipeline()
        self._value: Any = MISSING
        self._error: Optional[ValidationResult] = None

    # ------------------------------------------------------------------
    # Modifiers
    # ------------------------------------------------------------------

    def add_modifier(self, modifier: Modifier) -> "ValueSlot":
        self._guard_unset("add a modifier")
        self._pipeline.attach(modifier)
        return self

    def add_constraint(self, prototype, **config) -> "ValueSlot":
        self._guard_unset("add a constraint")
        return self.add_modifier(Constraint.build(prototype, config, self._registry))

    def add_filter(self, prototype, **config) -> "ValueSlot":
        self._guard_unset("add a filter")
        return self.add_modifier(Filter.build(prototype, config, self._registry))

    @property
    def pipeline(self) -> ModifierPipeline:
        return self._pipeline

    def modifiers(self) -> List[Modifier]:
        return self._pipeline.modifiers()

    def modifier_labels(self) -> List[str]:
        labels = []
        for modifier in self.modifiers():
            label = modifier.label
            if label is None:
                continue
            string = modifier.string
            labels.append(f"{label}: {string}" if string is not None else label)
        return labels

    def modifier_messages(self) -> List[str]:
        return [m.message for m in self.modifiers() if m.message is not None]

    # ------------------------------------------------------------------
    # Value
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._value is not MISSING

    def get_value(self) -> Any:
        if self._value is MISSING:
            hint = f" Last error: {self._error.message}" if self._error is not None else ""
            raise NotInitialized(f"Slot {self.name!r} has no value.{hint}", name=self.name)
        return self._value

    def set_value(self, value: Any) -> "ValueSlot":
        """
        Validate and store a value.

        Raises:
            InvalidValue: carrying the ValidationResult in `result`
        """
        self.unset_error()
        if value is None:
            if not self.nullable:
                self._reject(value, NULL_ERROR_MESSAGE)
            self._value = None
            return self

        candidate = value
        if self.rule is not None:
            try:
                candidate = self.rule.evaluate(value)
            except CoercionError as e:
                self._reject(value, DEFAULT_ERROR_MESSAGE, diagnostic=str(e))

        outcome = self._pipeline.evaluate(candidate)
        if not outcome.ok:
            self._reject(value, "; ".join(outcome.messages), failures=outcome.failures)

        self._value = outcome.value
        return self

    def try_set_value(self, value: Any) -> bool:
        try:
            self.set_value(value)
        except InvalidValue:
            return False
        return True

    def unset_value(self) -> "ValueSlot":
        self._value = MISSING
        return self

    def _reject(self, value: Any, message: str, diagnostic: Optional[str] = None,
                failures: Optional[List[ModifierFailure]] = None) -> None:
        self._error = ValidationResult(self.name, value, message, list(failures or []))
        raise InvalidValue(
            f"Invalid value {value!r} for {self.name!r}: {message}",
            owner=self, name=self.name, value=value, diagnostic=diagnostic, result=self._error,
        )

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    @property
    def error(self) -> Optional[ValidationResult]:
        return self._error

    @property
    def has_error(self) -> bool:
        return self._error is not None

    def unset_error(self) -> "ValueSlot":
        self._pipeline.unset_errors()
        self._error = None
        return self

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def get_schema(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "nullable": self.nullable,
            "modifiers": [m.get_schema() for m in self.modifiers()],
        }

    def clone(self) -> "ValueSlot":
        return copy.deepcopy(self)

    def _guard_unset(self, action: str) -> None:
        if self._value is not MISSING:
            raise AlreadyInitialized(
                f"Cannot {action} to slot {self.name!r} once a value is set.", owner=self, name=self.name
            )

    def __repr__(self):
        return f"ValueSlot({self.name!r}, modifiers={len(self._pipeline)})"
