"""
Unit tests for configuration helpers.
"""

import pytest

from lora_auth.config import get_bool_env, get_env


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


@pytest.mark.parametrize("value", ["1", "true", "TRUE", "yes", " on "])
def test_get_bool_env_true(monkeypatch, value):
    monkeypatch.setenv("FLAG", value)
    assert get_bool_env("FLAG") is True


@pytest.mark.parametrize("value", ["0", "false", "no", "off", "maybe"])
def test_get_bool_env_false(monkeypatch, value):
    monkeypatch.setenv("FLAG", value)
    assert get_bool_env("FLAG", default=True) is False


def test_get_bool_env_default(monkeypatch):
    monkeypatch.delenv("FLAG", raising=False)
    assert get_bool_env("FLAG") is False
    assert get_bool_env("FLAG", default=True) is True
    monkeypatch.setenv("FLAG", "  ")
    assert get_bool_env("FLAG", default=True) is True
