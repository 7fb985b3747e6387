"""
Unit tests for the configuration helpers.
"""

import pytest

from healthportal.config import env_flag, get_env


# ── Tests: get_env ───────────────────────────────────────────────────

def test_get_env_ok(monkeypatch):
    monkeypatch.setenv("X", "123")
    assert get_env("X") == "123"


def test_get_env_missing_exits(monkeypatch, capsys):
    monkeypatch.delenv("MISSING_ENV", raising=False)
    with pytest.raises(SystemExit) as e:
        get_env("MISSING_ENV")
    assert e.value.code == 1
    err = capsys.readouterr().err
    assert "ERROR: env var MISSING_ENV is not set" in err


# ── Tests: env_flag ──────────────────────────────────────────────────

@pytest.mark.parametrize("value", ["1", "true", "TRUE", " yes ", "on"])
def test_env_flag_truthy_values(monkeypatch, value):
    monkeypatch.setenv("SOME_FLAG", value)
    assert env_flag("SOME_FLAG") is True


@pytest.mark.parametrize("value", ["0", "false", "no", "off", ""])
def test_env_flag_other_values_are_false(monkeypatch, value):
    monkeypatch.setenv("SOME_FLAG", value)
    assert env_flag("SOME_FLAG", default=True) is False


def test_env_flag_unset_uses_default(monkeypatch):
    monkeypatch.delenv("SOME_FLAG", raising=False)
    assert env_flag("SOME_FLAG") is False
    assert env_flag("SOME_FLAG", default=True) is True
