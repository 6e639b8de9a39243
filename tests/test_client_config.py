"""Tests for GreeHvacClientConfig layering and local port derivation."""

import pytest

from gree_hvac import DEFAULT_COMMAND_TABLE, CommandTable, GreeHvacClientConfig, GreeHvacError, derive_local_port

ENV_VARS = (
    "GREE_HVAC_HOST",
    "GREE_HVAC_UPDATE_INTERVAL",
    "GREE_HVAC_RECONNECT_DELAY",
    "GREE_HVAC_DISCOVERY_PORT",
    "GREE_HVAC_LOCAL_PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.mark.parametrize(
    "host,port",
    [("192.168.1.50", 8050), ("10.0.0.1", 8001), ("10.0.0.0", 8000), ("172.16.4.255", 8255)],
)
def test_derive_local_port(host, port):
    assert derive_local_port(host) == port


@pytest.mark.parametrize("host", ["ac.local", "", "192.168.1", "fe80::1", "300.1.1.1"])
def test_derive_local_port_rejects_non_ipv4(host):
    with pytest.raises(GreeHvacError):
        derive_local_port(host)


def test_defaults():
    config = GreeHvacClientConfig()
    assert config.default_host is None
    assert config.update_interval_secs == 10.0
    assert config.reconnect_delay_secs == 5.0
    assert config.discovery_port == 7000
    assert config.local_port is None
    assert config.command_table is DEFAULT_COMMAND_TABLE
    with pytest.raises(GreeHvacError):
        config.host


def test_explicit_arguments():
    config = GreeHvacClientConfig(
        "192.168.1.50",
        update_interval_secs=2.5,
        reconnect_delay_secs=0,
        discovery_port=7100,
    )
    assert config.host == "192.168.1.50"
    assert config.update_interval_secs == 2.5
    assert config.reconnect_delay_secs == 0
    assert config.discovery_port == 7100
    assert config.resolve_local_port() == 8050


def test_invalid_host_rejected_early():
    with pytest.raises(GreeHvacError):
        GreeHvacClientConfig("ac.local")


def test_hostname_allowed_with_explicit_port():
    config = GreeHvacClientConfig("ac.local", local_port=9000)
    assert config.resolve_local_port() == 9000


def test_ephemeral_local_port():
    assert GreeHvacClientConfig("192.168.1.50", local_port=0).resolve_local_port() == 0


@pytest.mark.parametrize("kwargs", [{"update_interval_secs": 0}, {"reconnect_delay_secs": -1}])
def test_invalid_intervals(kwargs):
    with pytest.raises(GreeHvacError):
        GreeHvacClientConfig("192.168.1.50", **kwargs)


def test_environment(monkeypatch):
    monkeypatch.setenv("GREE_HVAC_HOST", "10.1.2.3")
    monkeypatch.setenv("GREE_HVAC_UPDATE_INTERVAL", "30")
    monkeypatch.setenv("GREE_HVAC_RECONNECT_DELAY", "1.5")
    monkeypatch.setenv("GREE_HVAC_DISCOVERY_PORT", "7001")
    monkeypatch.setenv("GREE_HVAC_LOCAL_PORT", "9123")
    config = GreeHvacClientConfig()
    assert config.host == "10.1.2.3"
    assert config.update_interval_secs == 30.0
    assert config.reconnect_delay_secs == 1.5
    assert config.discovery_port == 7001
    assert config.resolve_local_port() == 9123


def test_explicit_overrides_environment(monkeypatch):
    monkeypatch.setenv("GREE_HVAC_HOST", "10.1.2.3")
    monkeypatch.setenv("GREE_HVAC_UPDATE_INTERVAL", "30")
    config = GreeHvacClientConfig("10.1.2.4", update_interval_secs=5)
    assert config.host == "10.1.2.4"
    assert config.update_interval_secs == 5
    assert config.resolve_local_port() == 8004


def test_bad_environment_value(monkeypatch):
    monkeypatch.setenv("GREE_HVAC_UPDATE_INTERVAL", "often")
    with pytest.raises(GreeHvacError):
        GreeHvacClientConfig()


def test_base_config():
    base = GreeHvacClientConfig("192.168.1.50", update_interval_secs=3, local_port=9999)
    config = GreeHvacClientConfig(reconnect_delay_secs=2, base_config=base)
    assert config.host == "192.168.1.50"
    assert config.update_interval_secs == 3
    assert config.reconnect_delay_secs == 2
    assert config.local_port == 9999


def test_from_jsonable():
    config = GreeHvacClientConfig.from_jsonable(
        {
            "default_host": "192.168.1.7",
            "update_interval_secs": 15,
            "command_table": {"power": {"code": "Pow", "value": {"off": 0, "on": 1}}},
        }
    )
    assert config.host == "192.168.1.7"
    assert config.update_interval_secs == 15
    assert config.reconnect_delay_secs == 5.0
    assert config.command_table.all_codes() == ["Pow"]
    assert config.to_jsonable()["command_table"] == {"power": {"code": "Pow", "value": {"off": 0, "on": 1}}}


def test_from_jsonable_rejects_non_object():
    with pytest.raises(GreeHvacError):
        GreeHvacClientConfig.from_jsonable(["192.168.1.7"])


def test_to_jsonable_roundtrip():
    config = GreeHvacClientConfig("192.168.1.50", local_port=0)
    obj = config.to_jsonable()
    assert "command_table" not in obj
    again = GreeHvacClientConfig.from_jsonable(obj)
    assert again.to_jsonable() == obj
    assert isinstance(again.command_table, CommandTable)
