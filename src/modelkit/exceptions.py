"""
Exception hierarchy for modelkit.

Every failure raised by the property engine or the modifier pipeline is a
subclass of ModelKitError, raised at the point of violation and never
retried.

Two families matter to callers:
    - ProgrammingError: a bug in the code declaring or using properties
      (duplicate declarations, wrong scope, unknown names). Not meant to be
      caught.
    - DataError: externally supplied data was rejected. Expected and
      recoverable; surface it to whoever produced the data.
"""

from typing import Any, Optional


_NO_VALUE = object()


class ModelKitError(Exception):
    """Base class for all modelkit errors."""

    def __init__(self, message: str, owner: Any = None, name: Optional[str] = None,
                 value: Any = _NO_VALUE):
        super().__init__(message)
        self.message = message
        self.owner = owner
        self.name = name
        self.value = None if value is _NO_VALUE else value
        self.has_value = value is not _NO_VALUE


class ProgrammingError(ModelKitError):
    """Misuse of the API; fatal."""
    pass


class DataError(ModelKitError):
    """Rejected external data; recoverable."""
    pass


class AlreadyDeclared(ProgrammingError):
    """Raised when a property (or prototype) name is already in use."""
    pass


class AlreadyInitialized(ProgrammingError):
    """Raised when an initialize-once operation runs a second time."""
    pass


class PropertyNotFound(ProgrammingError):
    """Raised when a property name cannot be resolved, even by the builder."""
    pass


class InvalidProperty(ProgrammingError):
    """Raised when a builder returns something that cannot be registered."""
    pass


class Inaccessible(ProgrammingError):
    """Raised when the mode or bound scope of a property forbids the access."""
    pass


class InvalidPrototype(ProgrammingError):
    """Raised when a modifier prototype cannot be resolved or configured."""
    pass


class InvalidModifier(ProgrammingError):
    """Raised when something that is not a modifier is attached as one."""
    pass


class PropertyNotAllowed(ProgrammingError):
    """Raised when a prototype is configured with an undeclared property."""
    pass


class NotInitialized(ModelKitError):
    """Raised when a value is read before anything could resolve it."""
    pass


class Immutable(ModelKitError):
    """Raised when a write-once or readonly property is mutated."""
    pass


class InvalidValue(DataError):
    """
    Raised when a value is rejected by a type rule or a modifier pipeline.

    Properties:
        diagnostic: converter explanation, if any
        result: ValidationResult aggregating pipeline failures, if any
    """

    def __init__(self, message: str, owner: Any = None, name: Optional[str] = None,
                 value: Any = _NO_VALUE, diagnostic: Optional[str] = None, result: Any = None):
        super().__init__(message, owner=owner, name=name, value=value)
        self.diagnostic = diagnostic
        self.result = result


class RequiredMissing(DataError):
    """Raised when initialization omits required properties."""

    def __init__(self, message: str, owner: Any = None, names=()):
        super().__init__(message, owner=owner)
        self.names = list(names)


class CoercionError(ValueError):
    """Raised by type rules and converters to reject a value explicitly."""
    pass


def describe_owner(owner: Any) -> str:
    """Short human-readable owner label used in error messages."""
    if owner is None:
        return "<detached>"
    return type(owner).__name__
