"""Tests for the pretty JSON serialization of a device's records."""

import json

import pytest

from pydxl_tables import dump_records, load_records
from pydxl_tables.types import AccessLevel, ControlTableRecord, IntegerValue, SymbolicValue

RECORDS = [
    ControlTableRecord(address=0, size=2, access=AccessLevel.READ, field_name="ModelNumber",
                       initial_value=IntegerValue(1060)),
    ControlTableRecord(
        address=100,
        size=2,
        access=AccessLevel.READ_WRITE,
        field_name="GoalPWM",
        description="Target PWM",
        range=(SymbolicValue("PWMLimit", negated=True), SymbolicValue("PWMLimit")),
    ),
    ControlTableRecord(address=5, size=1, access=AccessLevel.WRITE),
]


def test_dump_layout() -> None:
    text = dump_records(RECORDS)
    data = json.loads(text)
    assert data[0] == {
        "address": 0,
        "size": 2,
        "field_name": "ModelNumber",
        "description": None,
        "access": "R",
        "initial_value": {"Integer": 1060},
        "range": None,
        "units": None,
    }
    assert data[1]["range"] == [
        {"Symbolic": {"field_name": "PWMLimit", "negated": True}},
        {"Symbolic": {"field_name": "PWMLimit", "negated": False}},
    ]
    assert data[2]["field_name"] is None


def test_dump_is_one_value_per_line() -> None:
    lines = dump_records(RECORDS[:1]).splitlines()
    assert '    "address": 0,' in lines
    assert '    "access": "R",' in lines
    assert dump_records(RECORDS).endswith("]\n")


def test_load_restores_records() -> None:
    assert load_records(dump_records(RECORDS)) == RECORDS


def test_load_rejects_unknown_access() -> None:
    text = json.dumps([{"address": 0, "size": 1, "access": "RO"}])
    with pytest.raises(ValueError, match="Unknown access"):
        load_records(text)


def test_load_rejects_non_array() -> None:
    with pytest.raises(ValueError, match="array"):
        load_records('{"address": 0}')


def test_load_rejects_bad_range_arity() -> None:
    text = json.dumps([{"address": 0, "size": 1, "access": "R", "range": [{"Integer": 0}]}])
    with pytest.raises(ValueError, match="two members"):
        load_records(text)
