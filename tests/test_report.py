"""
Tests for the environment report.

Tests verify that check_environment:
    - Lists every annotated field, nested ones included
    - Classifies variables as set, unset, missing or invalid
    - Collects every problem instead of stopping at the first
    - Never records variable values
    - Does not touch any instance
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from envbind.descriptors import env_field
from envbind.lookup import mapping_lookup
from envbind.report import EnvStatus, check_environment


@dataclass
class Db:
    dsn: str = env_field("DB_CONNECTION", required=True, default="")
    pool: int = env_field("DB_POOL", default=5)


@dataclass
class App:
    port: int = env_field("PORT", default=3000)
    debug: bool = env_field("DEBUG", default=False)
    hosts: List[str] = env_field("HOSTS", default_factory=list)
    labels: Dict[str, str] = env_field("LABELS", default_factory=dict)
    mode: str = env_field("MODE", required="sometimes", default="")
    untagged: str = ""
    db: Db = field(default_factory=Db)


@dataclass
class Node:
    value: str = env_field("NODE_VALUE", default="")
    next: Optional["Node"] = None


def _by_env(report):
    return {e.env: e for e in report.entries}


def test_all_fields_listed_in_order():
    report = check_environment(App, mapping_lookup({}))
    assert [e.path for e in report.entries] == [
        "App.port", "App.debug", "App.hosts", "App.labels", "App.mode", "App.db.dsn", "App.db.pool",
    ]
    assert report.variables == {"PORT", "DEBUG", "HOSTS", "LABELS", "MODE", "DB_CONNECTION", "DB_POOL"}


def test_statuses():
    report = check_environment(
        App,
        mapping_lookup({"PORT": "80", "DEBUG": "perhaps", "HOSTS": "", "DB_POOL": "10"}),
    )
    entries = _by_env(report)

    assert entries["PORT"].status is EnvStatus.SET
    assert entries["DEBUG"].status is EnvStatus.INVALID
    assert entries["HOSTS"].status is EnvStatus.UNSET
    assert entries["LABELS"].status is EnvStatus.INVALID
    assert entries["MODE"].status is EnvStatus.INVALID
    assert entries["MODE"].required is None
    assert entries["DB_CONNECTION"].status is EnvStatus.MISSING
    assert entries["DB_CONNECTION"].required is True
    assert entries["DB_POOL"].status is EnvStatus.SET

    assert not report.ok
    assert [e.env for e in report.missing] == ["DB_CONNECTION"]
    assert {e.env for e in report.invalid} == {"DEBUG", "LABELS", "MODE"}


def test_values_never_recorded():
    report = check_environment(App, mapping_lookup({"DEBUG": "s3cr3t", "PORT": "hunter2"}))
    for entry in report.entries:
        assert "s3cr3t" not in (entry.message or "")
        assert "hunter2" not in (entry.message or "")
    assert not any("s3cr3t" in w or "hunter2" in w for w in report.warnings)


def test_ok_report():
    @dataclass
    class Small:
        port: int = env_field("PORT", default=3000)
        db: Db = field(default_factory=Db)

    report = check_environment(Small, mapping_lookup({"DB_CONNECTION": "sqlite://"}))
    assert report.ok
    assert report.warnings == []


def test_warnings():
    report = check_environment(App, mapping_lookup({}))
    assert any("DB_CONNECTION" in w for w in report.warnings)
    assert any("App.labels" in w for w in report.warnings)


def test_shared_variable_with_different_kinds_warned():
    @dataclass
    class Shared:
        as_int: int = env_field("VALUE", default=0)
        as_text: str = env_field("VALUE", default="")

    report = check_environment(Shared, mapping_lookup({"VALUE": "1"}))
    assert report.ok
    assert report.warnings == ["Variable VALUE is read as int64, str"]


def test_recursive_shape_inspected_once():
    report = check_environment(Node, mapping_lookup({}))
    assert [e.path for e in report.entries] == ["Node.value"]
    assert any("Recursive record Node" in w for w in report.warnings)


def test_defaults_to_process_environment(monkeypatch):
    monkeypatch.setenv("DB_CONNECTION", "sqlite://")
    report = check_environment(Db)
    assert _by_env(report)["DB_CONNECTION"].status is EnvStatus.SET
