"""
Serialization helpers for record schemas and environment reports.

Renders descriptor tables and EnvReport objects as plain dicts, JSON or
YAML, e.g. to document the variables a service reads. Output only: no
configuration is ever loaded from these formats.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

import yaml

from envbind.descriptors import FieldDescriptor, describe
from envbind.report import EnvEntry, EnvReport


def descriptor_to_dict(d: FieldDescriptor, active: Tuple[type, ...] = ()) -> Dict[str, Any]:
    out: Dict[str, Any] = {"name": d.name, "kind": d.kind.value, "optional": d.optional}
    if d.is_record:
        out["record"] = d.record_type.__qualname__
        if d.record_type not in active:
            out["fields"] = _fields_to_list(d.record_type, active + (d.record_type,))
        return out
    out["env"] = d.env
    out["required"] = d.required if isinstance(d.required, bool) else str(d.required)
    if d.reason:
        out["reason"] = d.reason
    return out


def _fields_to_list(record_type: type, active: Tuple[type, ...]) -> List[Dict[str, Any]]:
    return [descriptor_to_dict(d, active) for d in describe(record_type)]


def descriptors_to_dict(record_type: type) -> Dict[str, Any]:
    """Nested schema of a record type: every field, bound or not."""
    return {
        "record": record_type.__qualname__,
        "fields": _fields_to_list(record_type, (record_type,)),
    }


def entry_to_dict(e: EnvEntry) -> Dict[str, Any]:
    return {
        "path": e.path,
        "env": e.env,
        "kind": e.kind,
        "required": e.required,
        "optional": e.optional,
        "status": e.status.value,
        "message": e.message,
    }


def report_to_dict(r: EnvReport) -> Dict[str, Any]:
    return {
        "record": r.record_name,
        "ok": r.ok,
        "entries": [entry_to_dict(e) for e in r.entries],
        "warnings": list(r.warnings),
    }


def report_to_json(r: EnvReport, indent: Optional[int] = None) -> str:
    return json.dumps(report_to_dict(r), sort_keys=True, indent=indent)


def report_to_yaml(r: EnvReport) -> str:
    return yaml.safe_dump(report_to_dict(r), sort_keys=False)


def descriptors_to_yaml(record_type: type) -> str:
    return yaml.safe_dump(descriptors_to_dict(record_type), sort_keys=False)
