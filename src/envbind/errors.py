"""
Errors raised while binding environment variables to records.

Every error is terminal for the bind call that raised it. Fields
assigned before the failing field keep their new values.
"""

from typing import Optional


class EnvBindError(Exception):
    """Base class for all binding errors."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class InvalidTargetError(EnvBindError, TypeError):
    """Raised when the bind target is not a mutable dataclass instance."""
    pass


class InvalidAnnotationError(EnvBindError):
    """Raised when a field's ``required`` annotation is not a boolean."""
    pass


class InvalidKindError(EnvBindError, TypeError):
    """Raised when an annotated field has a type the binder cannot fill."""
    pass


class NilOptionalTargetError(EnvBindError):
    """Raised when an optional field holds None and there is nowhere to write."""
    pass


class MissingRequiredError(EnvBindError):
    """Raised when a required variable is absent or empty."""

    def __init__(self, name: str, path: Optional[str] = None):
        self.name = name
        super().__init__(
            f"the environment variable {name} is required but was not specified", path
        )


class ParseError(EnvBindError, ValueError):
    """
    Raised when a present variable cannot be converted to the field's kind.

    Attributes:
        name: Environment variable name
        kind: Declared FieldKind of the target field
        raw: The raw text that failed to parse
        cause: The underlying exception
    """

    def __init__(self, name: str, kind, raw: str, cause: Exception, path: Optional[str] = None):
        self.name = name
        self.kind = kind
        self.raw = raw
        self.cause = cause
        super().__init__(
            f"cannot parse environment variable {name}={raw!r} as {kind.value}: {cause}", path
        )
