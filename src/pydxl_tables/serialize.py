"""Serialize a device's control table records to pretty JSON and load them back."""

import json
import logging
from typing import Any

from .types import AccessLevel, ControlTableRecord, IntegerValue, RangeValue, SymbolicValue

logger = logging.getLogger(__name__)


def _value_to_json(value: RangeValue | None) -> dict[str, Any] | None:
    if value is None:
        return None
    if isinstance(value, IntegerValue):
        return {"Integer": value.value}
    if isinstance(value, SymbolicValue):
        return {"Symbolic": {"field_name": value.field_name, "negated": value.negated}}
    raise TypeError(f"Unsupported range value: {value!r}")


def _value_from_json(raw: dict[str, Any] | None) -> RangeValue | None:
    if raw is None:
        return None
    if "Integer" in raw:
        return IntegerValue(int(raw["Integer"]))
    if "Symbolic" in raw:
        sym = raw["Symbolic"]
        return SymbolicValue(sym["field_name"], negated=bool(sym.get("negated", False)))
    raise ValueError(f"Unknown range value entry: {raw!r}")


def record_to_dict(record: ControlTableRecord) -> dict[str, Any]:
    """Plain-dict form of a record; ``range`` is a two-element [min, max] list."""
    return {
        "address": record.address,
        "size": record.size,
        "field_name": record.field_name,
        "description": record.description,
        "access": record.access.value,
        "initial_value": _value_to_json(record.initial_value),
        "range": None if record.range is None else [_value_to_json(v) for v in record.range],
        "units": record.units,
    }


def record_from_dict(raw: dict[str, Any]) -> ControlTableRecord:
    """Build a ControlTableRecord from a JSON entry produced by record_to_dict."""
    access_str = raw["access"]
    try:
        access = AccessLevel(access_str)
    except ValueError:
        raise ValueError(f"Unknown access {access_str!r} at address {raw.get('address')!r}")
    value_range = raw.get("range")
    if value_range is not None:
        if len(value_range) != 2:
            raise ValueError(f"range must have two members, got {value_range!r}")
        value_range = (_value_from_json(value_range[0]), _value_from_json(value_range[1]))
    return ControlTableRecord(
        address=int(raw["address"]),
        size=int(raw["size"]),
        access=access,
        field_name=raw.get("field_name"),
        description=raw.get("description"),
        initial_value=_value_from_json(raw.get("initial_value")),
        range=value_range,
        units=raw.get("units"),
    )


def dump_records(records: list[ControlTableRecord]) -> str:
    """Pretty JSON (one key per line) so two devices' tables diff field by field."""
    return json.dumps([record_to_dict(r) for r in records], indent=2, ensure_ascii=False) + "\n"


def load_records(text: str) -> list[ControlTableRecord]:
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError("Expected a JSON array of records")
    records = [record_from_dict(entry) for entry in data]
    logger.debug("Loaded %d records", len(records))
    return records
