"""Modifiers: prioritized constraints and filters applied to a value."""

from .prototype import (
    Capability,
    ConstraintPrototype,
    FilterPrototype,
    ModifierKind,
    ModifierPrototype,
    PrototypeRegistry,
    registry,
)
from .modifier import Constraint, EvaluationError, Filter, Modifier
from .pipeline import ModifierFailure, ModifierPipeline, PipelineResult
from .slot import ValidationResult, ValueSlot
from . import constraints, filters  # registers the built-in prototypes

__all__ = [
    "Capability",
    "Constraint",
    "ConstraintPrototype",
    "EvaluationError",
    "Filter",
    "FilterPrototype",
    "Modifier",
    "ModifierFailure",
    "ModifierKind",
    "ModifierPipeline",
    "ModifierPrototype",
    "PipelineResult",
    "PrototypeRegistry",
    "ValidationResult",
    "ValueSlot",
    "constraints",
    "filters",
    "registry",
]
