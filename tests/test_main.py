"""Startup: argument overrides and early exits."""

import pytest

from mock_maker.config import Settings
from mock_maker.main import apply_runtime_overrides, main, parse_args
from mock_maker.protocol import ConfigError

from conftest import TEST_SEED_HEX


@pytest.fixture
def settings():
    return Settings.from_env({"API_KEY": "test-key", "PRIVATE_KEY_HEX": TEST_SEED_HEX})


def test_overrides(settings):
    args = parse_args(["--levels", "3", "--interval-ms", "1000"])
    updated = apply_runtime_overrides(settings, args)

    assert (updated.levels, updated.interval_ms, updated.max_errors) == (3, 1000, 5)


def test_no_overrides_keeps_settings(settings):
    assert apply_runtime_overrides(settings, parse_args([])) is settings


def test_overrides_are_validated(settings):
    with pytest.raises(ConfigError):
        apply_runtime_overrides(settings, parse_args(["--levels", "0"]))


@pytest.fixture
def empty_env_file(tmp_path, monkeypatch):
    for name in ("API_KEY", "PRIVATE_KEY_HEX", "PAIRS_JSON", "SYMBOL"):
        monkeypatch.delenv(name, raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("# nothing here\n")
    return str(env_file)


@pytest.mark.asyncio
async def test_missing_env_file_exits_1(tmp_path):
    assert await main(["--env-file", str(tmp_path / "missing.env")]) == 1


@pytest.mark.asyncio
async def test_missing_api_key_exits_1(empty_env_file):
    assert await main(["--env-file", empty_env_file]) == 1


@pytest.mark.asyncio
async def test_bad_signing_key_exits_1(empty_env_file, monkeypatch):
    monkeypatch.setenv("API_KEY", "test-key")
    monkeypatch.setenv("PRIVATE_KEY_HEX", "zz" * 32)

    assert await main(["--env-file", empty_env_file]) == 1
