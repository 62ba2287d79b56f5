"""Tests for aggregation and the generated lookup module."""

import importlib.util
import json
import sys
from pathlib import Path

import pytest

from pydxl_tables import OutputMode, aggregate, generate
from pydxl_tables.codegen import field_names, model_key
from pydxl_tables.errors import GenerateError
from pydxl_tables.types import AccessLevel, ControlTableRecord, Device, IntegerValue, SymbolicValue


def _rec(address: int, name: str | None, size: int = 1, **kwargs) -> ControlTableRecord:
    return ControlTableRecord(address=address, size=size, access=AccessLevel.READ_WRITE, field_name=name, **kwargs)


@pytest.fixture
def devices() -> list[Device]:
    return [
        Device("x", "xl430-w250", "XL430-W250", [
            _rec(64, "TorqueEnable", range=(IntegerValue(0), IntegerValue(1))),
            _rec(0, "ModelNumber", size=2, initial_value=IntegerValue(1060)),
            _rec(100, "GoalPWM", size=2,
                 range=(SymbolicValue("PWMLimit", negated=True), SymbolicValue("PWMLimit"))),
            _rec(5, None),
        ]),
        Device("x", "2xl430-w250", "2XL430-W250", [
            _rec(0, "ModelNumber", size=2),
            _rec(64, "TorqueEnable"),
        ]),
        Device("mx", "mx-28", "MX-28", [
            _rec(0, "ModelNumber", size=2),
            _rec(24, "TorqueEnable"),
            _rec(30, "Goal Position", size=2),
        ]),
    ]


def _load(source: str, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    path = tmp_path / "dxl_control_tables.py"
    path.write_text(source, encoding="utf-8")
    spec = importlib.util.spec_from_file_location("dxl_control_tables", path)
    module = importlib.util.module_from_spec(spec)
    monkeypatch.setitem(sys.modules, "dxl_control_tables", module)
    spec.loader.exec_module(module)
    return module


def test_model_key() -> None:
    assert model_key("xl430-w250") == "XL430W250"
    assert model_key("2xl430-w250") == "2XL430W250"


def test_aggregate_nests_sorted(devices: list[Device]) -> None:
    table = aggregate(devices)
    assert list(table) == ["MX", "X"]
    assert list(table["X"]) == ["2XL430W250", "XL430W250"]
    assert list(table["X"]["XL430W250"]) == ["GoalPWM", "ModelNumber", "TorqueEnable"]
    assert table["MX"]["MX28"]["GoalPosition"].address == 30


def test_aggregate_last_duplicate_wins() -> None:
    device = Device("x", "xl320", "XL320", [_rec(10, "Led"), _rec(25, "Led")])
    assert aggregate([device])["X"]["XL320"]["Led"].address == 25


def test_field_names_sorted_and_unique(devices: list[Device]) -> None:
    assert field_names(aggregate(devices)) == ["GoalPWM", "GoalPosition", "ModelNumber", "TorqueEnable"]


def test_address_mode_lookup(devices: list[Device], tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    artifact = generate(devices, mode=OutputMode.ADDRESS)
    mod = _load(artifact.source, tmp_path, monkeypatch)
    assert mod.address(mod.Model.XL430W250, mod.DataName.TorqueEnable) == 64
    assert mod.address(mod.Model.MX28, mod.DataName.TorqueEnable) == 24
    assert mod.Model.MX28.series == "MX"
    assert mod.Model.M2XL430W250.model_id == "2XL430W250"
    assert mod.SERIES == {"MX": ("MX28",), "X": ("2XL430W250", "XL430W250")}
    with pytest.raises(mod.NoMatchingAddress) as exc_info:
        mod.address(mod.Model.MX28, mod.DataName.GoalPWM)
    assert exc_info.value.model is mod.Model.MX28
    assert "does not support field 'GoalPWM'" in str(exc_info.value)
    assert not hasattr(mod, "record")


def test_full_mode_lookup(devices: list[Device], tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    artifact = generate(devices, mode=OutputMode.FULL)
    mod = _load(artifact.source, tmp_path, monkeypatch)
    rec = mod.record(mod.Model.XL430W250, mod.DataName.GoalPWM)
    assert rec.address == 100
    assert rec.size == 2
    assert rec.access is mod.AccessLevel.READ_WRITE
    assert rec.range == (mod.SymbolicValue("PWMLimit", negated=True), mod.SymbolicValue("PWMLimit"))
    assert mod.record(mod.Model.XL430W250, mod.DataName.ModelNumber).initial_value == mod.IntegerValue(1060)
    assert mod.address(mod.Model.XL430W250, mod.DataName.ModelNumber) == 0
    with pytest.raises(mod.ControlTableError):
        mod.record(mod.Model.M2XL430W250, mod.DataName.GoalPWM)


def test_records_sorted_by_address(devices: list[Device]) -> None:
    source = generate(devices).source
    block = source[source.index("Model.XL430W250: {"):]
    positions = [block.index(f"DataName.{n}:") for n in ("ModelNumber", "TorqueEnable", "GoalPWM")]
    assert positions == sorted(positions)


def test_generation_is_deterministic(devices: list[Device]) -> None:
    first = generate(devices, mode=OutputMode.FULL)
    second = generate(list(reversed(devices)), mode=OutputMode.FULL)
    assert first.source == second.source
    assert first.manifest == second.manifest


def test_enabled_series_subset(devices: list[Device], tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    artifact = generate(devices, enabled_series=["mx"])
    assert artifact.models == ("MX28",)
    assert "GoalPWM" in artifact.field_names
    mod = _load(artifact.source, tmp_path, monkeypatch)
    assert [m.name for m in mod.Model] == ["MX28"]
    manifest = json.loads(artifact.manifest)
    assert manifest["default"] == ["MX"]
    assert manifest["series"]["X"] == {"default": False, "models": ["2XL430W250", "XL430W250"]}


def test_manifest_defaults_to_all_series(devices: list[Device]) -> None:
    manifest = json.loads(generate(devices).manifest)
    assert manifest["default"] == ["MX", "X"]
    assert manifest["series"]["MX"] == {"default": True, "models": ["MX28"]}


def test_unknown_series_raises(devices: list[Device]) -> None:
    with pytest.raises(GenerateError, match="PRO"):
        generate(devices, enabled_series=["pro"])


def test_no_devices_raises() -> None:
    with pytest.raises(GenerateError):
        generate([])


def test_colliding_model_keys_resolve_independent_of_order() -> None:
    devs = [
        Device("x", "xl430-w250", "XL430-W250", [_rec(10, "Led")]),
        Device("x", "xl430w250", "XL430W250", [_rec(65, "Led")]),
    ]
    assert generate(devs).source == generate(list(reversed(devs))).source
    assert aggregate(devs)["X"]["XL430W250"]["Led"].address == 65


def test_same_model_in_two_series_raises() -> None:
    devs = [
        Device("x", "xl320", "XL320", [_rec(0, "ModelNumber", size=2)]),
        Device("xl", "xl320", "XL320", [_rec(0, "ModelNumber", size=2)]),
    ]
    with pytest.raises(GenerateError, match="XL320.*X and XL"):
        generate(devs)
    assert generate(devs, enabled_series=["xl"]).models == ("XL320",)
