"""Aggregate devices into series -> model -> field and generate a Python lookup module."""

import json
import keyword
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from .errors import GenerateError
from .normalize import sanitize_name
from .types import ControlTableRecord, Device, IntegerValue, RangeValue, SymbolicValue

logger = logging.getLogger(__name__)

# series -> model_id -> field name -> record, all keys sorted
AggregatedTable = dict[str, dict[str, dict[str, ControlTableRecord]]]

INDENT = "    "

_MODULE_HEADER = '''"""Dynamixel control tables.

Generated by pydxl-tables. Do not edit by hand.
"""
'''

_ERROR_DEFINITION = '''

class ControlTableError(Exception):
    """Base exception for control table lookups."""

    pass


class NoMatchingAddress(ControlTableError):
    """Raised when a model does not define the requested field."""

    def __init__(self, model: "Model", name: "DataName") -> None:
        self.model = model
        self.name = name
        super().__init__(f"Dynamixel model {model.name!r} does not support field {name.name!r}")
'''

_RECORD_DEFINITION = '''

class AccessLevel(str, Enum):
    READ = "R"
    WRITE = "W"
    READ_WRITE = "RW"


@dataclass(frozen=True)
class IntegerValue:
    value: int


@dataclass(frozen=True)
class SymbolicValue:
    """Bound expressed as the value of another field."""

    field_name: str
    negated: bool = False


RangeValue = Union[IntegerValue, SymbolicValue]


@dataclass(frozen=True)
class ControlTableRecord:
    address: int
    size: int
    access: AccessLevel
    field_name: Optional[str] = None
    description: Optional[str] = None
    initial_value: Optional[RangeValue] = None
    range: Optional[tuple[RangeValue, RangeValue]] = None
    units: Optional[str] = None
'''

_MODEL_INIT = '''
    def __init__(self, model_id: str, series: str) -> None:
        self.model_id = model_id
        self.series = series
'''

_ADDRESS_LOOKUP = '''

def address(model: Model, name: DataName) -> int:
    """Return the control table address of ``name`` on ``model``."""
    try:
        return _ADDRESSES[model][name]
    except KeyError:
        raise NoMatchingAddress(model, name) from None
'''

_RECORD_LOOKUP = '''

def record(model: Model, name: DataName) -> ControlTableRecord:
    """Return the control table record of ``name`` on ``model``."""
    try:
        return _RECORDS[model][name]
    except KeyError:
        raise NoMatchingAddress(model, name) from None


def address(model: Model, name: DataName) -> int:
    """Return the control table address of ``name`` on ``model``."""
    return record(model, name).address
'''


class OutputMode(str, Enum):
    """What the generated lookup returns."""

    ADDRESS = "address"
    FULL = "full"


@dataclass(frozen=True)
class GeneratedArtifact:
    """Generated module source, JSON manifest and the enumerations they declare."""

    source: str
    manifest: str
    field_names: tuple[str, ...]
    models: tuple[str, ...]


def series_key(series: str) -> str:
    return series.strip().upper()


def model_key(model_id: str) -> str:
    """Raw identifier reduced to upper-cased alphanumerics: "xl430-w250" -> "XL430W250"."""
    return "".join(c for c in model_id if c.isalnum()).upper()


def _identifier(name: str, prefix: str) -> str:
    """Python identifier for an enum member; prefixed when it would start with a digit."""
    if not name or not name[0].isalpha():
        name = prefix + name
    if keyword.iskeyword(name):
        name += "_"
    return name


def aggregate(devices: Iterable[Device]) -> AggregatedTable:
    """
    Nest records by series, model and sanitized field name.

    Devices are visited in (series, model, raw id) order so a duplicate field
    name resolves the same way for any input order; the last record wins.
    """
    nested: dict[str, dict[str, dict[str, ControlTableRecord]]] = {}
    ordered = sorted(
        devices,
        key=lambda d: (series_key(d.series), model_key(d.model_id), d.model_id, d.display_name or ""),
    )
    for device in ordered:
        models = nested.setdefault(series_key(device.series), {})
        fields = models.setdefault(model_key(device.model_id), {})
        for record in device.records:
            name = sanitize_name(record.field_name or "")
            if not name:
                continue
            if name in fields:
                logger.warning(
                    "Duplicate field %s on %s (addresses %d and %d); keeping the last",
                    name, device.model_id, fields[name].address, record.address,
                )
            fields[name] = record
    return {
        s: {m: dict(sorted(f.items())) for m, f in sorted(models.items())}
        for s, models in sorted(nested.items())
    }


def field_names(table: AggregatedTable) -> list[str]:
    """Sorted, de-duplicated field names across every series and model."""
    return sorted({name for models in table.values() for fields in models.values() for name in fields})


def _render_value(value: RangeValue) -> str:
    if isinstance(value, IntegerValue):
        return f"IntegerValue({value.value})"
    if isinstance(value, SymbolicValue):
        return f"SymbolicValue({value.field_name!r}, negated={value.negated})"
    raise TypeError(f"Unsupported range value: {value!r}")


def render_record(record: ControlTableRecord) -> str:
    """Literal ControlTableRecord(...) expression for the generated module."""
    initial = "None" if record.initial_value is None else _render_value(record.initial_value)
    if record.range is None:
        value_range = "None"
    else:
        value_range = f"({_render_value(record.range[0])}, {_render_value(record.range[1])})"
    return (
        f"ControlTableRecord(address={record.address}, size={record.size}, "
        f"access=AccessLevel.{record.access.name}, field_name={record.field_name!r}, "
        f"description={record.description!r}, initial_value={initial}, "
        f"range={value_range}, units={record.units!r})"
    )


def build_manifest(table: AggregatedTable, enabled: set[str]) -> str:
    """JSON manifest of optional series groups: default membership and gated models."""
    manifest = {
        "default": [s for s in table if s in enabled],
        "series": {
            s: {"default": s in enabled, "models": list(models)}
            for s, models in table.items()
        },
    }
    return json.dumps(manifest, indent=2) + "\n"


def generate(
    devices: Iterable[Device],
    mode: OutputMode = OutputMode.ADDRESS,
    enabled_series: Iterable[str] | None = None,
) -> GeneratedArtifact:
    """
    Generate the lookup module and manifest for a set of devices.

    Only models of ``enabled_series`` (default: every series) are emitted; the
    DataName enumeration always covers every device. Output is byte-identical
    for the same device set in any order.
    """
    table = aggregate(devices)
    if not table:
        raise GenerateError("No devices to generate from")
    if enabled_series is None:
        enabled = set(table)
    else:
        enabled = {series_key(s) for s in enabled_series}
        unknown = sorted(enabled - set(table))
        if unknown:
            raise GenerateError(f"Unknown series: {', '.join(unknown)} (known: {', '.join(table)})")

    names = field_names(table)
    name_ids = {n: _identifier(n, "F") for n in names}
    gated = [(s, m, fields) for s, models in table.items() if s in enabled for m, fields in models.items()]
    model_ids = {}
    owners: dict[str, str] = {}
    for s, m, _ in gated:
        ident = _identifier(m, "M")
        if ident in owners:
            raise GenerateError(f"Model {ident} is defined in both series {owners[ident]} and {s}")
        owners[ident] = s
        model_ids[m] = ident

    parts = [_MODULE_HEADER, "\n"]
    if mode is OutputMode.FULL:
        parts.append("from dataclasses import dataclass\n")
    parts.append("from enum import Enum\n")
    if mode is OutputMode.FULL:
        parts.append("from typing import Optional, Union\n")
    parts.append(_ERROR_DEFINITION)
    if mode is OutputMode.FULL:
        parts.append(_RECORD_DEFINITION)

    parts.append('\n\nclass DataName(str, Enum):\n')
    parts.append(f'{INDENT}"""Control table fields known across all scraped models."""\n\n')
    for n in names:
        parts.append(f"{INDENT}{name_ids[n]} = {n!r}\n")

    parts.append('\n\nclass Model(Enum):\n')
    parts.append(f'{INDENT}"""Dynamixel models; each member carries the series it belongs to."""\n\n')
    for s, m, _ in gated:
        parts.append(f"{INDENT}{model_ids[m]} = ({m!r}, {s!r})\n")
    parts.append(_MODEL_INIT)

    parts.append("\n\nSERIES: dict[str, tuple[str, ...]] = {\n")
    for s, models in table.items():
        if s in enabled:
            members = "".join(f"{m!r}, " for m in models).rstrip()
            parts.append(f"{INDENT}{s!r}: ({members}),\n")
    parts.append("}\n")

    if mode is OutputMode.FULL:
        parts.append("\n_RECORDS: dict[Model, dict[DataName, ControlTableRecord]] = {\n")
    else:
        parts.append("\n_ADDRESSES: dict[Model, dict[DataName, int]] = {\n")
    for _, m, fields in gated:
        parts.append(f"{INDENT}Model.{model_ids[m]}: {{\n")
        for n, rec in sorted(fields.items(), key=lambda item: (item[1].address, item[0])):
            value = render_record(rec) if mode is OutputMode.FULL else str(rec.address)
            parts.append(f"{INDENT * 2}DataName.{name_ids[n]}: {value},\n")
        parts.append(f"{INDENT}}},\n")
    parts.append("}\n")
    parts.append(_RECORD_LOOKUP if mode is OutputMode.FULL else _ADDRESS_LOOKUP)

    logger.info(
        "Generated %s lookup: %d fields, %d models in %d/%d series",
        mode.value, len(names), len(gated), len(enabled), len(table),
    )
    return GeneratedArtifact(
        source="".join(parts),
        manifest=build_manifest(table, enabled),
        field_names=tuple(names),
        models=tuple(m for _, m, _ in gated),
    )
