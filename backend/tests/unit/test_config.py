"""Unit tests for Settings loading and validation"""

import pytest
from pydantic import ValidationError

from config import Settings, get_settings


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("FIREWORKS_API_KEY", raising=False)
        settings = Settings(_env_file=None)

        assert settings.MATCH_AUTO_ACCEPT_THRESHOLD == 85
        assert settings.MATCH_QUICK_REVIEW_THRESHOLD == 60
        assert settings.MATCH_MAX_AI_CANDIDATES == 10
        assert settings.MATCH_AI_TIMEOUT_MS == 30_000
        assert settings.MATCH_AI_RETRIES == 2
        assert settings.MATCH_FUZZY_THRESHOLD == 0.3
        assert settings.MATCH_FUZZY_DISTANCE == 100
        assert settings.FIREWORKS_API_KEY is None
        assert settings.ai_timeout_seconds == 30.0

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("MATCH_AUTO_ACCEPT_THRESHOLD", "90")
        monkeypatch.setenv("MATCH_AI_TIMEOUT_MS", "1500")
        monkeypatch.setenv("FIREWORKS_API_KEY", "fw-test")

        settings = Settings(_env_file=None)

        assert settings.MATCH_AUTO_ACCEPT_THRESHOLD == 90
        assert settings.ai_timeout_seconds == 1.5
        assert settings.FIREWORKS_API_KEY == "fw-test"

    def test_quick_review_above_auto_accept_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, MATCH_AUTO_ACCEPT_THRESHOLD=50, MATCH_QUICK_REVIEW_THRESHOLD=60)

    @pytest.mark.parametrize("field,value", [
        ("MATCH_AUTO_ACCEPT_THRESHOLD", 101),
        ("MATCH_MAX_AI_CANDIDATES", 0),
        ("MATCH_AI_RETRIES", 0),
        ("MATCH_FUZZY_THRESHOLD", 1.5),
        ("MATCH_AI_TIMEOUT_MS", 0),
    ])
    def test_out_of_range_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
