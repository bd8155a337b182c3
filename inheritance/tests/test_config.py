import json

import pytest
import yaml

from inheritance import config
from inheritance.config import ProtocolConfig, TimingConfig


def test_defaults_match_protocol_constants():
    cfg = ProtocolConfig()
    cfg.validate()
    assert cfg.timing.check_in_period_units == 90
    assert cfg.timing.grace_period_units == 30
    assert cfg.timing.check_in_period == 90 * 86_400
    assert cfg.timing.verification_after == 120 * 86_400
    assert cfg.token_decimals == 6


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("INHERITANCE_CHECK_IN_PERIOD_UNITS", "7")
    monkeypatch.setenv("INHERITANCE_TIME_UNIT_SECONDS", "3_600")
    monkeypatch.setenv("INHERITANCE_DB", "/tmp/x.db")
    cfg = config.from_env()
    assert cfg.timing == TimingConfig(check_in_period_units=7, grace_period_units=30, time_unit_seconds=3600)
    assert cfg.db_path == "/tmp/x.db"


def test_env_rejects_garbage(monkeypatch):
    monkeypatch.setenv("INHERITANCE_GRACE_PERIOD_UNITS", "soon")
    with pytest.raises(ValueError):
        config.from_env()


def test_yaml_file_then_env(tmp_path, monkeypatch):
    p = tmp_path / "cfg.yaml"
    p.write_text(yaml.safe_dump({"timing": {"check_in_period_units": 10, "grace_period_units": 5}, "token_decimals": 18}))
    monkeypatch.setenv("INHERITANCE_CONFIG_FILE", str(p))
    monkeypatch.setenv("INHERITANCE_GRACE_PERIOD_UNITS", "2")
    cfg = config.load_config()
    assert cfg.timing.check_in_period_units == 10
    assert cfg.timing.grace_period_units == 2
    assert cfg.token_decimals == 18


def test_json_file(tmp_path):
    p = tmp_path / "cfg.json"
    p.write_text(json.dumps({"timing": {"time_unit_seconds": 1}, "db_path": "a.db"}))
    cfg = config.from_file(p)
    assert cfg.timing.time_unit_seconds == 1
    assert cfg.timing.check_in_period_units == 90
    assert cfg.db_path == "a.db"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        config.from_file(tmp_path / "nope.json")


@pytest.mark.parametrize(
    "timing",
    [
        TimingConfig(check_in_period_units=0),
        TimingConfig(grace_period_units=-1),
        TimingConfig(time_unit_seconds=0),
    ],
)
def test_invalid_timing(timing):
    with pytest.raises(ValueError):
        timing.validate()


def test_pretty_is_json():
    assert json.loads(config.pretty(ProtocolConfig()))["timing"]["grace_period_units"] == 30
