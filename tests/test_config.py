import pytest

import config
from config import Settings, load_settings

ENV_NAMES = [
    "GEMINI_API_KEY", "API_KEY", "GEMINI_STUDENT_MODEL", "EXTRACTION_TIMEOUT",
    "DEFAULT_TOTAL_FEES", "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.setattr(config, "_secret", lambda name: "")
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    assert load_settings() == Settings()


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("API_KEY", " abc ")
    monkeypatch.setenv("GEMINI_STUDENT_MODEL", "gemini-x")
    monkeypatch.setenv("EXTRACTION_TIMEOUT", "15")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    s = load_settings()
    assert s.gemini_api_key == "abc"
    assert s.student_model == "gemini-x"
    assert s.extraction_timeout == 15
    assert s.log_level == "DEBUG"


def test_secrets_win_over_env(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    monkeypatch.setattr(config, "_secret", lambda name: "from-secrets" if name == "GEMINI_API_KEY" else "")
    assert load_settings().gemini_api_key == "from-secrets"


def test_bad_integer_falls_back(monkeypatch):
    monkeypatch.setenv("DEFAULT_TOTAL_FEES", "lots")
    assert load_settings().default_total_fees == 50000
