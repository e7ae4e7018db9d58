"""
modelkit: managed properties and validation pipelines for plain objects.

Two layers:
    - Properties: declared types, access modes, write-once and readonly
      semantics, lazy defaults and on-demand materialization
      (Property, PropertiesManager, Structure)
    - Modifiers: constraints and filters grouped by priority and evaluated
      as a pipeline over a single value (modelkit.modifiers)

Everything is synchronous and in-memory. Persistence, rendering and
transport belong to the caller.
"""

from .exceptions import (
    AlreadyDeclared,
    AlreadyInitialized,
    CoercionError,
    DataError,
    Immutable,
    Inaccessible,
    InvalidModifier,
    InvalidProperty,
    InvalidPrototype,
    InvalidValue,
    ModelKitError,
    NotInitialized,
    ProgrammingError,
    PropertyNotAllowed,
    PropertyNotFound,
    RequiredMissing,
)
from .manager import ManagerState, PropertiesManager
from .property import MISSING, Declaration, Property, PropertyMode
from .structure import Structure

__version__ = "0.1.0"
