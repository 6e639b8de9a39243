"""Tests for the property command table."""

import pytest

from gree_hvac import DEFAULT_COMMAND_TABLE, CommandTable, GreeHvacError, PropertyMeta


def test_default_codes():
    codes = DEFAULT_COMMAND_TABLE.all_codes()
    assert codes[:4] == ["Pow", "Mod", "TemUn", "SetTem"]
    for code in ("WdSpd", "SwUpDn", "SwingLfRig", "TemSen", "HeatCoolType", "TemRec", "SvSt", "StHt"):
        assert code in codes
    assert len(codes) == len(set(codes)) == len(DEFAULT_COMMAND_TABLE)


def test_lookup():
    assert DEFAULT_COMMAND_TABLE.code_for("power") == "Pow"
    assert DEFAULT_COMMAND_TABLE["mode"].value_of("heat") == 4
    assert DEFAULT_COMMAND_TABLE["fan_speed"].value_of("high") == 5
    assert DEFAULT_COMMAND_TABLE["temperature_unit"].value_of("fahrenheit") == 1
    assert "swing_vert" in DEFAULT_COMMAND_TABLE
    assert "warp_drive" not in DEFAULT_COMMAND_TABLE


def test_unknown_name():
    with pytest.raises(GreeHvacError):
        DEFAULT_COMMAND_TABLE["warp_drive"]


def test_unknown_named_value():
    with pytest.raises(GreeHvacError):
        DEFAULT_COMMAND_TABLE["mode"].value_of("party")
    with pytest.raises(GreeHvacError):
        DEFAULT_COMMAND_TABLE["temperature"].value_of("hot")


def test_all_codes_deduplicates():
    table = CommandTable([PropertyMeta("a", "Pow"), PropertyMeta("b", "Mod"), PropertyMeta("c", "Pow")])
    assert table.all_codes() == ["Pow", "Mod"]


def test_duplicate_names_rejected():
    with pytest.raises(GreeHvacError):
        CommandTable([PropertyMeta("a", "Pow"), PropertyMeta("a", "Mod")])


def test_from_jsonable():
    table = CommandTable.from_jsonable(
        {"power": {"code": "Pow", "value": {"off": 0, "on": 1}}, "temperature": {"code": "SetTem"}}
    )
    assert [p.name for p in table] == ["power", "temperature"]
    assert table["power"].value_of("on") == 1
    assert table["temperature"].values is None


@pytest.mark.parametrize("obj", [{"power": "Pow"}, {"power": {"code": 5}}, {"power": {"code": "Pow", "value": [1]}}])
def test_from_jsonable_rejects_bad_entries(obj):
    with pytest.raises(GreeHvacError):
        CommandTable.from_jsonable(obj)
