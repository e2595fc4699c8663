"""Tests for config.Settings."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from config import Settings


class TestDefaults:
    def test_values(self):
        s = Settings(_env_file=None)
        assert s.zabbix_port == 10051
        assert s.response_timeout == 10
        assert s.sea_level_pressure == 1013.25
        assert s.unavailable_value is None
        assert s.trapper_extended_length is False

    def test_item_keys_in_capture_order(self):
        s = Settings(_env_file=None)
        assert list(s.item_keys) == ["temperature", "humidity", "pressure", "altitude"]
        assert s.item_keys["temperature"] == "Temp"


class TestEnvironment:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("ZABBIX_SERVER", "zbx.lan")
        monkeypatch.setenv("ZABBIX_PORT", "10052")
        monkeypatch.setenv("KEY_TEMPERATURE", "bme.temp")
        monkeypatch.setenv("UNAVAILABLE_VALUE", "-999")
        monkeypatch.setenv("TRAPPER_EXTENDED_LENGTH", "true")

        s = Settings(_env_file=None)
        assert s.zabbix_server == "zbx.lan"
        assert s.zabbix_port == 10052
        assert s.item_keys["temperature"] == "bme.temp"
        assert s.unavailable_value == -999.0
        assert s.trapper_extended_length is True

    def test_env_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("ZABBIX_HOST=Arduino\nSEND_INTERVAL=30\n", encoding="utf-8")
        s = Settings(_env_file=env)
        assert s.zabbix_host == "Arduino"
        assert s.send_interval == 30

    @pytest.mark.parametrize("name", ["SEND_INTERVAL", "RESPONSE_TIMEOUT", "CONNECT_TIMEOUT"])
    def test_non_positive_timing_rejected(self, monkeypatch, name):
        monkeypatch.setenv(name, "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
