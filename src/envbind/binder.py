"""
Binder: fills a dataclass instance from environment variables.

The binder walks a record's field descriptors in declaration order and,
for every field annotated with a source variable, looks the variable
up, converts its text to the field's declared kind and assigns it.
Nested records are bound recursively.

Rules:
    - An absent or empty variable never touches the field.
    - A required variable that is absent or empty fails the bind.
    - A present variable that does not parse fails the bind.
    - Fields without an ``env`` annotation are never touched.
    - Annotations on a nested record field itself are ignored.
    - A record instance reached twice on one path is a cyclic graph.

Binding is fail-fast: the first error is raised and fields assigned
before it keep their new values. Nothing is rolled back.
"""

from __future__ import annotations

import dataclasses
import logging
from collections import Counter
from enum import Enum
from typing import Any, FrozenSet, Optional, Tuple

from envbind.descriptors import FieldDescriptor, describe
from envbind.errors import (
    EnvBindError,
    InvalidKindError,
    InvalidTargetError,
    MissingRequiredError,
    NilOptionalTargetError,
    ParseError,
)
from envbind.kinds import coerce
from envbind.lookup import Lookup, environ_lookup

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """Resolution outcome of a single annotated field."""

    SET = "set"
    UNSET = "unset"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True)
class _Frame:
    """One record on the path being bound."""

    record: Any  # None when the record has no storage
    record_type: type
    path: str
    types: Tuple[type, ...]
    ids: FrozenSet[int]
    detached: Optional[str] = None  # why there is no storage
    detached_types: Tuple[type, ...] = ()

    def child(self, record: Any, record_type: type, path: str, detached: Optional[str] = None) -> "_Frame":
        ids = self.ids if record is None else self.ids | {id(record)}
        detached_types = self.detached_types + (record_type,) if record is None else self.detached_types
        return _Frame(
            record=record,
            record_type=record_type,
            path=path,
            types=self.types + (record_type,),
            ids=ids,
            detached=detached,
            detached_types=detached_types,
        )


class Binder:
    """
    Binds environment variables into dataclass instances.

    Args:
        lookup:
            Callable returning a variable's text or None.
            Defaults to reading the process environment.
        allocate_optional:
            Policy for Optional fields holding None. When False (default)
            such a field has no storage, and a present variable bound to
            it raises NilOptionalTargetError. When True leaf fields are
            assigned directly and nested records are created by calling
            their type with no arguments.

    A nested record holding None is still walked without storage so that
    absent variables stay unset and required ones are still enforced.
    Only a value that would actually be written fails.
    """

    def __init__(self, lookup: Optional[Lookup] = None, allocate_optional: bool = False):
        self.lookup = lookup if lookup is not None else environ_lookup
        self.allocate_optional = allocate_optional

    def bind(self, target: Any) -> None:
        """
        Populate ``target`` in place.

        Raises:
            InvalidTargetError: target is None, not a dataclass instance, frozen,
                or its record graph is cyclic
            InvalidAnnotationError: a ``required`` annotation is malformed
            InvalidKindError: an annotated field has an unsupported type
            NilOptionalTargetError: a present variable has nowhere to be written
            MissingRequiredError: a required variable is absent or empty
            ParseError: a variable's text does not fit the field's kind
        """
        if target is None:
            raise InvalidTargetError("expected a dataclass instance, received None")
        if isinstance(target, type) or not dataclasses.is_dataclass(target):
            raise InvalidTargetError(
                f"expected a dataclass instance, received {type(target).__name__}"
            )

        counts: Counter = Counter()
        root = type(target)
        frame = _Frame(record=target, record_type=root, path=root.__qualname__,
                       types=(root,), ids=frozenset({id(target)}))
        self._bind_record(frame, counts)
        logger.debug(
            "bound %s: %d set, %d unset",
            root.__qualname__,
            counts[Outcome.SET],
            counts[Outcome.UNSET],
        )

    def _bind_record(self, frame: _Frame, counts: Counter) -> None:
        params = getattr(frame.record_type, "__dataclass_params__", None)
        if frame.record is not None and params is not None and params.frozen:
            raise InvalidTargetError(
                f"cannot bind into frozen dataclass {frame.record_type.__qualname__}", frame.path
            )

        for descriptor in describe(frame.record_type):
            field_path = f"{frame.path}.{descriptor.name}"

            if descriptor.is_record:
                nested = self._nested_frame(frame, descriptor, field_path)
                if nested is not None:
                    self._bind_record(nested, counts)
                continue

            if descriptor.env is None:
                continue

            try:
                outcome = self._bind_leaf(frame, descriptor, field_path)
            except EnvBindError:
                counts[Outcome.FAILED] += 1
                logger.debug("%s failed (%s)", field_path, descriptor.env)
                raise
            counts[outcome] += 1

    def _nested_frame(self, frame: _Frame, descriptor: FieldDescriptor, path: str) -> Optional[_Frame]:
        record_type = descriptor.record_type

        if frame.record is None:
            # Already detached: each record type is walked once without storage
            if record_type in frame.detached_types:
                return None
            return frame.child(None, record_type, path, frame.detached)

        nested = getattr(frame.record, descriptor.name)
        if nested is not None:
            if not dataclasses.is_dataclass(nested) or isinstance(nested, type):
                raise InvalidTargetError(
                    f"expected a {record_type.__qualname__} instance, found {type(nested).__name__}",
                    path,
                )
            if id(nested) in frame.ids:
                raise InvalidTargetError(
                    f"cyclic record graph: {type(nested).__qualname__} is already being bound", path
                )
            return frame.child(nested, type(nested), path)

        if not self.allocate_optional:
            return frame.child(
                None, record_type, path,
                f"nested {record_type.__qualname__} is None and has no storage to bind into",
            )
        if record_type in frame.types:
            return frame.child(
                None, record_type, path,
                f"refusing to allocate {record_type.__qualname__} recursively",
            )
        try:
            nested = record_type()
        except TypeError as exc:
            return frame.child(
                None, record_type, path,
                f"cannot allocate {record_type.__qualname__} without arguments: {exc}",
            )
        setattr(frame.record, descriptor.name, nested)
        logger.debug("%s allocated", path)
        return frame.child(nested, record_type, path)

    def _bind_leaf(self, frame: _Frame, descriptor: FieldDescriptor, path: str) -> Outcome:
        required = descriptor.is_required(path)
        name = descriptor.env

        if not descriptor.kind.is_leaf:
            raise InvalidKindError(descriptor.reason or f"unsupported kind for {name}", path)

        raw = self.lookup(name)
        if not raw:
            if required:
                raise MissingRequiredError(name, path)
            logger.debug("%s unset (%s absent or empty)", path, name)
            return Outcome.UNSET

        record = frame.record
        if record is None:
            raise NilOptionalTargetError(f"{frame.detached}; cannot write {name}", path)
        if descriptor.optional and getattr(record, descriptor.name) is None and not self.allocate_optional:
            raise NilOptionalTargetError(
                f"optional field bound to {name} is None and has no storage to write into", path
            )

        try:
            value = coerce(raw, descriptor.kind)
        except ValueError as exc:
            raise ParseError(name, descriptor.kind, raw, exc, path) from exc

        setattr(record, descriptor.name, value)
        logger.debug("%s set from %s", path, name)
        return Outcome.SET


def unmarshal(target: Any, lookup: Optional[Lookup] = None, *, allocate_optional: bool = False) -> None:
    """
    Dump environment variable values into the fields of a dataclass instance.

    Fields are filled from the variable named by their ``env`` annotation.
    Mark a field ``required`` to fail when its variable is absent or empty.
    Booleans accept "true"/"false", "yes"/"no", "on"/"off", "t"/"f", "y"/"n"
    and "1"/"0" in any case. Empty or unset variables never overwrite a
    field. Nested dataclasses are filled recursively, and ``List[str]``
    fields take ":" separated values.

    Args:
        target: Dataclass instance to populate in place
        lookup: Variable lookup (defaults to the process environment)
        allocate_optional: Create storage for Optional fields holding None

    Raises:
        EnvBindError: The first failure encountered (see Binder.bind)
    """
    Binder(lookup, allocate_optional=allocate_optional).bind(target)
