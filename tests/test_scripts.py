"""
Tests for the operator scripts.
"""

import importlib.util
from pathlib import Path

import pytest

SCRIPTS = Path(__file__).resolve().parent.parent / "scripts"


def load_script(name):
    location = importlib.util.spec_from_file_location(name, SCRIPTS / f"{name}.py")
    module = importlib.util.module_from_spec(location)
    location.loader.exec_module(module)
    return module


@pytest.fixture
def secret_script():
    return load_script("generate_secret_key")


def test_new_secret_length(secret_script):
    assert len(secret_script.new_secret()) == 64
    assert len(secret_script.new_secret(48)) == 96


def test_new_secret_is_random(secret_script):
    assert secret_script.new_secret() != secret_script.new_secret()


def test_short_secret_rejected(secret_script):
    with pytest.raises(ValueError):
        secret_script.new_secret(16)


def test_main_prints_env_line(secret_script, capsys):
    secret_script.main()
    out = capsys.readouterr()
    assert out.out.startswith("JWT_SECRET=")
    assert len(out.out.strip().split("=", 1)[1]) == 64
    assert "[init]" in out.err


def test_main_rejects_short_secret(secret_script, capsys):
    with pytest.raises(SystemExit):
        secret_script.main("8")
    assert "[ERROR]" in capsys.readouterr().err
