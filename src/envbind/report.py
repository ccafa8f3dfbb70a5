"""
Environment Report: dry-run inventory of a configuration shape.

Walks a record type (not an instance) and checks every annotated field
against the environment without assigning anything:
    - Which variables are set, unset or missing
    - Which values do not parse for their declared kind
    - Annotation problems (malformed ``required``, unsupported kinds)
    - Variables shared by fields of different kinds

IMPORTANT: Unlike the binder this collects every problem instead of
stopping at the first one. It never records variable values, only
their names, so a report is safe to print or ship to logs.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from envbind.descriptors import describe
from envbind.errors import InvalidAnnotationError
from envbind.kinds import coerce
from envbind.lookup import Lookup, environ_lookup


class EnvStatus(Enum):
    SET = "set"
    UNSET = "unset"
    MISSING = "missing"
    INVALID = "invalid"


@dataclass
class EnvEntry:
    """One annotated leaf field and what the environment holds for it."""
    path: str
    env: str
    kind: str
    required: Optional[bool]
    optional: bool
    status: EnvStatus
    message: Optional[str] = None


@dataclass
class EnvReport:
    """Inventory of every annotated field of a record shape."""

    record_name: str
    entries: List[EnvEntry] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when binding this shape would not fail on any field."""
        return not self.missing and not self.invalid

    @property
    def missing(self) -> List[EnvEntry]:
        return [e for e in self.entries if e.status is EnvStatus.MISSING]

    @property
    def invalid(self) -> List[EnvEntry]:
        return [e for e in self.entries if e.status is EnvStatus.INVALID]

    @property
    def variables(self) -> Set[str]:
        return {e.env for e in self.entries}

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)


def _check_entry(descriptor, path: str, lookup: Lookup) -> EnvEntry:
    entry = EnvEntry(
        path=path,
        env=descriptor.env,
        kind=descriptor.kind.value,
        required=None,
        optional=descriptor.optional,
        status=EnvStatus.UNSET,
    )

    try:
        entry.required = descriptor.is_required()
    except InvalidAnnotationError as e:
        entry.status = EnvStatus.INVALID
        entry.message = str(e)
        return entry

    if not descriptor.kind.is_leaf:
        entry.status = EnvStatus.INVALID
        entry.message = descriptor.reason
        return entry

    raw = lookup(descriptor.env)
    if not raw:
        if entry.required:
            entry.status = EnvStatus.MISSING
            entry.message = f"{descriptor.env} is required but was not specified"
        return entry

    try:
        coerce(raw, descriptor.kind)
    except ValueError:
        # The raw value stays out of the report
        entry.status = EnvStatus.INVALID
        entry.message = f"{descriptor.env} is not a valid {descriptor.kind.value}"
        return entry

    entry.status = EnvStatus.SET
    return entry


def _walk(record_type: type, path: str, active: Tuple[type, ...], lookup: Lookup, report: EnvReport) -> None:
    for descriptor in describe(record_type):
        field_path = f"{path}.{descriptor.name}"
        if descriptor.is_record:
            nested = descriptor.record_type
            if nested in active:
                report.add_warning(f"Recursive record {nested.__qualname__} at {field_path} not inspected")
                continue
            _walk(nested, field_path, active + (nested,), lookup, report)
        elif descriptor.env is not None:
            report.entries.append(_check_entry(descriptor, field_path, lookup))


def check_environment(record_type: type, lookup: Optional[Lookup] = None) -> EnvReport:
    """
    Inspect the environment for a record shape without binding it.

    Args:
        record_type: Dataclass type describing the configuration
        lookup: Variable lookup (defaults to the process environment)

    Returns:
        EnvReport listing every annotated field, in declaration order
    """
    lookup = lookup if lookup is not None else environ_lookup
    report = EnvReport(record_name=record_type.__qualname__)
    _walk(record_type, record_type.__qualname__, (record_type,), lookup, report)

    kinds_by_var: Dict[str, Set[str]] = defaultdict(set)
    for entry in report.entries:
        kinds_by_var[entry.env].add(entry.kind)
    for var, kinds in sorted(kinds_by_var.items()):
        if len(kinds) > 1:
            report.add_warning(f"Variable {var} is read as {', '.join(sorted(kinds))}")

    for entry in report.missing:
        report.add_warning(f"Missing required variable: {entry.env} ({entry.path})")
    for entry in report.invalid:
        report.add_warning(f"Invalid field {entry.path}: {entry.message}")

    return report
