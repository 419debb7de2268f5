"""Unit tests for configuration module.

Tests environment variable handling, defaults and validation logic.
"""
from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from statcollector.config import (
    DEFAULT_RUN_LIMIT,
    DEFAULT_STATS_DB,
    PROJECT_ROOT,
    RUN_LIMIT_ENV,
    STATS_DB_ENV,
    STEAM_API_KEY_ENV,
    get_default_run_limit,
    get_ledger_settings,
    get_steam_api_key,
)


# ==============================================================================
# get_steam_api_key() Tests
# ==============================================================================

@pytest.mark.unit
def test_get_steam_api_key_from_env():
    with patch.dict(os.environ, {STEAM_API_KEY_ENV: "ABCDEF0123"}, clear=False):
        assert get_steam_api_key() == "ABCDEF0123"


@pytest.mark.unit
@pytest.mark.parametrize("env", [{}, {STEAM_API_KEY_ENV: ""}])
def test_get_steam_api_key_missing_raises(env):
    with patch.dict(os.environ, env, clear=True):
        with pytest.raises(RuntimeError, match="STEAM_API_KEY"):
            get_steam_api_key()


# ==============================================================================
# get_ledger_settings() Tests
# ==============================================================================

@pytest.mark.unit
def test_ledger_settings_default_path():
    with patch.dict(os.environ, {}, clear=True):
        settings = get_ledger_settings()
    assert settings.path == DEFAULT_STATS_DB.resolve()
    assert settings.path.is_relative_to(PROJECT_ROOT)
    assert settings.url == f"sqlite:///{settings.path}"


@pytest.mark.unit
def test_ledger_settings_empty_env_uses_default():
    with patch.dict(os.environ, {STATS_DB_ENV: ""}, clear=True):
        assert get_ledger_settings().path == DEFAULT_STATS_DB.resolve()


@pytest.mark.unit
def test_ledger_settings_expands_and_resolves():
    with patch.dict(os.environ, {STATS_DB_ENV: "~/ledger.db"}, clear=True):
        settings = get_ledger_settings()
        expected = (Path.home() / "ledger.db").resolve()
    assert settings.path.is_absolute()
    assert "~" not in str(settings.path)
    assert settings.path == expected


# ==============================================================================
# get_default_run_limit() Tests
# ==============================================================================

@pytest.mark.unit
def test_default_run_limit_when_unset():
    with patch.dict(os.environ, {}, clear=True):
        assert get_default_run_limit() == DEFAULT_RUN_LIMIT


@pytest.mark.unit
def test_run_limit_from_env():
    with patch.dict(os.environ, {RUN_LIMIT_ENV: "2500"}, clear=True):
        assert get_default_run_limit() == 2500


@pytest.mark.unit
@pytest.mark.parametrize("raw", ["abc", "1.5", "0", "-3"])
def test_run_limit_invalid_raises(raw):
    with patch.dict(os.environ, {RUN_LIMIT_ENV: raw}, clear=True):
        with pytest.raises(RuntimeError, match="CRAWL_RUN_LIMIT"):
            get_default_run_limit()
