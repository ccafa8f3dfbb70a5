"""
Field Descriptors

Derives, once per record shape, the read-only table of field descriptors
the binder walks: field name, declared kind, optionality, source variable
and required flag.

Records are dataclasses. Fields are annotated through dataclass metadata:

    @dataclass
    class Config:
        port: int = field(default=3000, metadata={"env": "PORT"})
        dsn: str = field(default="", metadata={"env": "DB_CONNECTION", "required": "true"})

or, equivalently, with the ``env_field`` helper:

    @dataclass
    class Config:
        port: int = env_field("PORT", default=3000)
        dsn: str = env_field("DB_CONNECTION", required=True, default="")

ARCHITECTURAL RULE:
    Descriptors are immutable and cached process-wide. The cache is
    written under a lock so each shape is derived exactly once; reads
    after the first derivation take no lock.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import logging
import sys
import threading
import types
import typing
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from envbind.errors import InvalidAnnotationError, InvalidTargetError
from envbind.kinds import SCALAR_KINDS, FieldKind, parse_friendly_bool

logger = logging.getLogger(__name__)

ENV_KEY = "env"
REQUIRED_KEY = "required"

_NONE_TYPE = type(None)
_UNION_ORIGINS = (Union, types.UnionType)
_SEQUENCE_ORIGINS = (list, collections.abc.Sequence)


@dataclass(frozen=True)
class FieldDescriptor:
    """
    Describes one member of a record.

    Properties:
        name:
            Attribute name on the record
        kind:
            Declared FieldKind (after one level of optionality)
        optional:
            True when declared as Optional[T]
        env:
            Source variable name, or None if the field is not bound
        required:
            Raw ``required`` annotation (bool or friendly-boolean text).
            It is resolved at bind time so a malformed value fails the
            bind that reaches it, not the declaration.
        record_type:
            Dataclass type for RECORD fields
        reason:
            Why the kind is UNSUPPORTED, for error messages
    """

    name: str
    kind: FieldKind
    optional: bool = False
    env: Optional[str] = None
    required: Any = False
    record_type: Optional[type] = None
    reason: Optional[str] = None

    @property
    def is_record(self) -> bool:
        return self.kind is FieldKind.RECORD

    def is_required(self, path: Optional[str] = None) -> bool:
        """
        Resolve the ``required`` annotation.

        Raises:
            InvalidAnnotationError: If the annotation is not a boolean
                or friendly-boolean text
        """
        value = self.required
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                return parse_friendly_bool(value)
            except ValueError as exc:
                raise InvalidAnnotationError(
                    f"annotation {REQUIRED_KEY!r} must have a boolean string value, got {value!r}",
                    path,
                ) from exc
        raise InvalidAnnotationError(
            f"annotation {REQUIRED_KEY!r} must be a bool or boolean string, got {type(value).__name__}",
            path,
        )


def _unwrap_newtype(hint: Any) -> Any:
    """Follow NewType aliases down to a known marker or a real type."""
    while hasattr(hint, "__supertype__") and _scalar_kind(hint) is None:
        hint = hint.__supertype__
    return hint


def _scalar_kind(hint: Any) -> Optional[FieldKind]:
    try:
        return SCALAR_KINDS.get(hint)
    except TypeError:
        # Unhashable hint
        return None


def _is_union(hint: Any) -> bool:
    return typing.get_origin(hint) in _UNION_ORIGINS


def resolve_kind(hint: Any) -> Tuple[FieldKind, bool, Optional[type], Optional[str]]:
    """
    Map a declared type hint onto (kind, optional, record_type, reason).

    One level of Optional is peeled off. Optional-of-optional, other
    unions and any type outside the supported set resolve to UNSUPPORTED.
    """
    hint = _unwrap_newtype(hint)
    optional = False

    if _is_union(hint):
        args = typing.get_args(hint)
        members = [a for a in args if a is not _NONE_TYPE]
        if len(members) != 1 or len(members) == len(args):
            return FieldKind.UNSUPPORTED, False, None, f"union type {hint!r} is not supported"
        optional = True
        hint = _unwrap_newtype(members[0])
        if _is_union(hint):
            return FieldKind.UNSUPPORTED, True, None, f"optional of optional {hint!r} is not supported"

    kind = _scalar_kind(hint)
    if kind is not None:
        return kind, optional, None, None

    if typing.get_origin(hint) in _SEQUENCE_ORIGINS:
        if typing.get_args(hint) == (str,):
            return FieldKind.STRING_LIST, optional, None, None
        return FieldKind.UNSUPPORTED, optional, None, f"only sequences of str are supported, got {hint!r}"

    if isinstance(hint, type) and dataclasses.is_dataclass(hint):
        return FieldKind.RECORD, optional, hint, None

    return FieldKind.UNSUPPORTED, optional, None, f"type {hint!r} is not supported"


def _field_hint(record_type: type, f: dataclasses.Field) -> Tuple[Any, Optional[str]]:
    """Resolve one field's hint when the record's hints cannot be resolved as a whole."""
    if not isinstance(f.type, str):
        return f.type, None
    module = sys.modules.get(record_type.__module__)
    globalns = dict(vars(module)) if module is not None else {}
    localns = dict(vars(record_type))
    try:
        return eval(f.type, globalns, localns), None
    except (NameError, AttributeError, SyntaxError, TypeError) as exc:
        return None, f"cannot resolve type hint {f.type!r}: {exc}"


def _derive(record_type: type) -> Tuple[FieldDescriptor, ...]:
    """
    Build the descriptor table for one record type.

    When ``typing.get_type_hints`` fails for the record (typically a
    forward reference that cannot be resolved), hints are resolved field
    by field instead. A field whose hint still cannot be resolved becomes
    UNSUPPORTED, so it only fails if it is annotated and bound.
    """
    try:
        hints = typing.get_type_hints(record_type)
    except (NameError, TypeError):
        hints = None

    descriptors = []
    for f in dataclasses.fields(record_type):
        # Private fields are never bound
        if f.name.startswith("_"):
            continue

        env = f.metadata.get(ENV_KEY)
        if env is not None and not isinstance(env, str):
            raise InvalidAnnotationError(
                f"annotation {ENV_KEY!r} must be a variable name string, got {type(env).__name__}",
                f"{record_type.__qualname__}.{f.name}",
            )

        if hints is not None:
            hint, failure = hints.get(f.name, f.type), None
        else:
            hint, failure = _field_hint(record_type, f)

        if failure is not None:
            kind, optional, nested, reason = FieldKind.UNSUPPORTED, False, None, failure
        else:
            kind, optional, nested, reason = resolve_kind(hint)
        descriptors.append(
            FieldDescriptor(
                name=f.name,
                kind=kind,
                optional=optional,
                env=env,
                required=f.metadata.get(REQUIRED_KEY, False),
                record_type=nested,
                reason=reason,
            )
        )
    return tuple(descriptors)


_cache: Dict[type, Tuple[FieldDescriptor, ...]] = {}
_cache_lock = threading.Lock()


def describe(record_type: type) -> Tuple[FieldDescriptor, ...]:
    """
    Return the field descriptors of a dataclass type, in declaration order.

    Args:
        record_type: A dataclass type

    Returns:
        Tuple of FieldDescriptor (cached per type)

    Raises:
        InvalidTargetError: If record_type is not a dataclass type
        InvalidAnnotationError: If an ``env`` annotation is not a string
    """
    cached = _cache.get(record_type)
    if cached is not None:
        return cached

    if not (isinstance(record_type, type) and dataclasses.is_dataclass(record_type)):
        raise InvalidTargetError(f"expected a dataclass type, got {record_type!r}")

    with _cache_lock:
        cached = _cache.get(record_type)
        if cached is None:
            cached = _derive(record_type)
            _cache[record_type] = cached
            logger.debug("derived %d field descriptors for %s", len(cached), record_type.__qualname__)
    return cached


def clear_cache() -> None:
    """Forget every derived descriptor table."""
    with _cache_lock:
        _cache.clear()


def env_field(
    name: str,
    *,
    required: Union[bool, str] = False,
    default: Any = dataclasses.MISSING,
    default_factory: Any = dataclasses.MISSING,
    **kwargs: Any,
) -> Any:
    """
    Declare a dataclass field bound to an environment variable.

    Args:
        name: Source environment variable
        required: Fail the bind if the variable is absent or empty
        default: Field default (as for dataclasses.field)
        default_factory: Field default factory (as for dataclasses.field)
        **kwargs: Passed through to dataclasses.field

    Returns:
        A dataclasses.Field carrying the ``env`` and ``required`` metadata
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[ENV_KEY] = name
    metadata[REQUIRED_KEY] = required
    return dataclasses.field(
        default=default, default_factory=default_factory, metadata=metadata, **kwargs
    )
