"""
Tests for schema and report serialization.

These tests ensure the dict form is stable and that the JSON and YAML
renditions carry the same content, using the explicit functions in
`envbind.serialization`.
"""

import json

import yaml

from envbind.examples import ServiceConfig, build_example_environment
from envbind.lookup import mapping_lookup
from envbind.report import check_environment
from envbind.serialization import (
    descriptors_to_dict,
    descriptors_to_yaml,
    report_to_dict,
    report_to_json,
    report_to_yaml,
)


def test_schema_dict():
    schema = descriptors_to_dict(ServiceConfig)
    assert schema["record"] == "ServiceConfig"

    fields = {f["name"]: f for f in schema["fields"]}
    assert fields["port"] == {"name": "port", "kind": "int64", "optional": False, "env": "PORT", "required": False}
    assert fields["region"]["optional"] is True
    assert fields["allowed_hosts"]["kind"] == "list[str]"

    database = fields["database"]
    assert database["kind"] == "record"
    assert database["record"] == "DatabaseConfig"
    assert "env" not in database
    nested = {f["name"]: f for f in database["fields"]}
    assert nested["dsn"]["required"] is True
    assert nested["pool_size"]["kind"] == "uint16"
    assert nested["timeout_seconds"]["kind"] == "float32"


def test_schema_yaml_matches_dict():
    assert yaml.safe_load(descriptors_to_yaml(ServiceConfig)) == descriptors_to_dict(ServiceConfig)


def test_report_json_and_yaml():
    report = check_environment(ServiceConfig, mapping_lookup(build_example_environment()))
    as_dict = report_to_dict(report)

    assert as_dict["ok"] is True
    assert as_dict["record"] == "ServiceConfig"
    statuses = {e["env"]: e["status"] for e in as_dict["entries"]}
    assert statuses["PORT"] == "set"
    assert statuses["REGION"] == "unset"

    assert json.loads(report_to_json(report)) == as_dict
    assert yaml.safe_load(report_to_yaml(report)) == as_dict


def test_report_with_problems():
    report = check_environment(ServiceConfig, mapping_lookup({"PORT": "eighty"}))
    as_dict = report_to_dict(report)
    assert as_dict["ok"] is False
    statuses = {e["env"]: e["status"] for e in as_dict["entries"]}
    assert statuses["PORT"] == "invalid"
    assert statuses["DB_CONNECTION"] == "missing"
    assert len(as_dict["warnings"]) == 2
