#!/usr/bin/env python3
"""
Tests for settings and the config.bat loader.
"""

import logging
import os

from config import DEFAULT_ALLOWED_ORIGINS, Settings, load_config_bat, parse_config_bat


def test_defaults_from_empty_env():
    settings = Settings.from_env({})
    assert settings.port == 3001
    assert settings.rate_limit_window == 900
    assert settings.rate_limit_max_requests == 50
    assert settings.environment == "development"
    assert not settings.is_production
    assert settings.allowed_origins == DEFAULT_ALLOWED_ORIGINS
    assert settings.missing_credentials() == ["PRINTIFY_API_TOKEN", "PRINTIFY_SHOP_ID"]


def test_values_from_env():
    settings = Settings.from_env({
        "PRINTIFY_API_BASE": "https://printify.test/v1/",
        "PRINTIFY_API_TOKEN": "tok",
        "PRINTIFY_SHOP_ID": "9001",
        "PORT": "8080",
        "APP_ENV": "production",
        "ALLOWED_ORIGINS": "https://shop.example, https://admin.example",
        "RATE_LIMIT_MAX_REQUESTS": "10",
    })
    assert settings.printify_api_base == "https://printify.test/v1"
    assert settings.port == 8080
    assert settings.is_production
    assert settings.allowed_origins[-2:] == ["https://shop.example", "https://admin.example"]
    assert settings.rate_limit_max_requests == 10
    assert settings.missing_credentials() == []


def test_missing_credentials_warn(caplog):
    with caplog.at_level(logging.WARNING):
        Settings().warn_missing_credentials()
    assert "PRINTIFY_API_TOKEN" in caplog.text
    assert "PEXELS_API_KEY" in caplog.text


def test_load_config_bat(tmp_path, monkeypatch):
    config_bat = tmp_path / "config.bat"
    config_bat.write_text("@echo off\nset WAVE_TEST_TOKEN=abc=123\nrem comment\n")
    monkeypatch.delenv("WAVE_TEST_TOKEN", raising=False)

    assert load_config_bat(config_bat) == 1
    assert os.environ["WAVE_TEST_TOKEN"] == "abc=123"
    monkeypatch.delenv("WAVE_TEST_TOKEN")


def test_load_config_bat_missing_file(tmp_path):
    assert load_config_bat(tmp_path / "nope.bat") == 0


def test_parse_config_bat_forms():
    text = '\n'.join([
        "@echo off",
        ":: Printify",
        'SET "PRINTIFY_SHOP_ID=9001"',
        "set PORT=3001",
        "set PORT=4000",
        "echo set NOT_THIS=1",
    ])
    assert parse_config_bat(text) == {"PRINTIFY_SHOP_ID": "9001", "PORT": "4000"}
