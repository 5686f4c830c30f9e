# tests/test_config.py
import logging

from leitner_tutor import __version__
from leitner_tutor.config import DEFAULT_DB_PATH, _parse_int_env, load_settings


def test_parse_int_env(monkeypatch):
    monkeypatch.delenv("LEITNER_X", raising=False)
    assert _parse_int_env("LEITNER_X", 5) == 5
    monkeypatch.setenv("LEITNER_X", "12")
    assert _parse_int_env("LEITNER_X", 5) == 12
    monkeypatch.setenv("LEITNER_X", "twelve")
    assert _parse_int_env("LEITNER_X", 5) == 5


def test_load_settings_defaults(monkeypatch):
    for name in ("LEITNER_DB_PATH", "LEITNER_MATERIAL", "LEITNER_APP_VERSION", "LEITNER_FETCH_TIMEOUT",
                 "LEITNER_TELEGRAM_TOKEN", "LEITNER_TELEGRAM_CHAT_ID", "LEITNER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.db_path == DEFAULT_DB_PATH
    assert settings.app_version == __version__
    assert settings.fetch_timeout == 60
    assert settings.telegram_token is None
    assert settings.log_level == logging.WARNING


def test_load_settings_from_env(monkeypatch):
    monkeypatch.setenv("LEITNER_DB_PATH", "/tmp/p.db")
    monkeypatch.setenv("LEITNER_MATERIAL", "https://example.org/m")
    monkeypatch.setenv("LEITNER_FETCH_TIMEOUT", "15")
    monkeypatch.setenv("LEITNER_TELEGRAM_TOKEN", "tok")
    monkeypatch.setenv("LEITNER_TELEGRAM_CHAT_ID", "")
    monkeypatch.setenv("LEITNER_LOG_LEVEL", "debug")
    settings = load_settings()
    assert settings.db_path == "/tmp/p.db"
    assert settings.material == "https://example.org/m"
    assert settings.fetch_timeout == 15
    assert settings.telegram_token == "tok"
    assert settings.telegram_chat_id is None
    assert settings.log_level == logging.DEBUG


def test_bad_log_level_falls_back(monkeypatch):
    monkeypatch.setenv("LEITNER_LOG_LEVEL", "chatty")
    assert load_settings().log_level == logging.WARNING
