"""
envbind: fill dataclasses from environment variables.

Declare a configuration shape once, annotate its fields with the
variables they come from, and populate it in one call:

    @dataclass
    class Config:
        port: int = env_field("PORT", default=3000)
        dsn: str = env_field("DB_CONNECTION", required=True, default="")

    config = Config()
    unmarshal(config)

This package reads the environment. It never writes to it, never
reads configuration files and resolves each value exactly once per call.
"""

from envbind.binder import Binder, Outcome, unmarshal
from envbind.descriptors import FieldDescriptor, describe, env_field
from envbind.errors import (
    EnvBindError,
    InvalidAnnotationError,
    InvalidKindError,
    InvalidTargetError,
    MissingRequiredError,
    NilOptionalTargetError,
    ParseError,
)
from envbind.kinds import (
    FieldKind,
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    Uint8,
    Uint16,
    Uint32,
    Uint64,
)
from envbind.lookup import environ_lookup, mapping_lookup

__version__ = "0.1.0"

__all__ = [
    "Binder",
    "Outcome",
    "unmarshal",
    "FieldDescriptor",
    "describe",
    "env_field",
    "EnvBindError",
    "InvalidAnnotationError",
    "InvalidKindError",
    "InvalidTargetError",
    "MissingRequiredError",
    "NilOptionalTargetError",
    "ParseError",
    "FieldKind",
    "Float32",
    "Float64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "Uint8",
    "Uint16",
    "Uint32",
    "Uint64",
    "environ_lookup",
    "mapping_lookup",
]
