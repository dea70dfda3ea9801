"""Tests for src.config — Settings validation and startup checks."""

import pytest
from pydantic import ValidationError

from src.config import Settings, _load_settings


def _settings(**overrides):
    return Settings(TELEGRAM_BOT_TOKEN="123:abc", **overrides)


class TestSettingsDefaults:
    def test_defaults(self):
        s = _settings()
        assert s.TOPIC_TTL_MINUTES == 10
        assert s.REMINDER_TIMES == ["08:00", "10:00", "14:00", "19:00", "23:00"]
        assert s.MORNING_DIGEST_TIME == "08:00"
        assert s.NIGHTLY_WIPE_TIME == "03:00"
        assert s.CHAT_ID is None
        assert s.ALLOWED_USER_IDS == []
        assert str(s.tzinfo) == "Europe/Moscow"


class TestSettingsParsing:
    def test_reminder_times_from_env_string(self):
        s = _settings(REMINDER_TIMES="9:00, 21:30,")
        assert s.REMINDER_TIMES == ["09:00", "21:30"]

    def test_bad_reminder_time(self):
        with pytest.raises(ValidationError):
            _settings(REMINDER_TIMES="08:00,25:00")

    def test_bad_wipe_time(self):
        with pytest.raises(ValidationError):
            _settings(NIGHTLY_WIPE_TIME="three")

    def test_bad_timezone(self):
        with pytest.raises(ValidationError):
            _settings(TIMEZONE="Mars/Olympus_Mons")

    @pytest.mark.parametrize("ttl", ["0", "-5"])
    def test_ttl_must_be_positive(self, ttl):
        with pytest.raises(ValidationError):
            _settings(TOPIC_TTL_MINUTES=ttl)

    @pytest.mark.parametrize("seconds", ["0", "60", "120"])
    def test_poll_interval_must_fit_in_a_minute(self, seconds):
        with pytest.raises(ValidationError):
            _settings(SCHEDULER_POLL_SECONDS=seconds)

    def test_chat_id(self):
        assert _settings(CHAT_ID="").CHAT_ID is None
        assert _settings(CHAT_ID="-100123").CHAT_ID == -100123

    def test_allowed_user_ids(self):
        assert _settings(ALLOWED_USER_IDS="1, 2,3").ALLOWED_USER_IDS == [1, 2, 3]
        assert _settings(ALLOWED_USER_IDS="").ALLOWED_USER_IDS == []


class TestLoadSettings:
    def test_missing_token_exits(self, monkeypatch):
        monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
        with pytest.raises(SystemExit):
            _load_settings()

    def test_placeholder_token_exits(self, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "your-token-here")
        with pytest.raises(SystemExit):
            _load_settings()

    def test_invalid_value_exits(self, monkeypatch):
        monkeypatch.setenv("REMINDER_TIMES", "noon")
        with pytest.raises(SystemExit):
            _load_settings()

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("TOPIC_TTL_MINUTES", "15")
        monkeypatch.setenv("CHAT_ID", "42")
        s = _load_settings()
        assert s.TOPIC_TTL_MINUTES == 15
        assert s.CHAT_ID == 42
