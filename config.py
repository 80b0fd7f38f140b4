"""
config.py
=========
Runtime settings for the student portal import tools.

Lookup order for every value: Streamlit Cloud secrets → environment variable → default.
"""

import os
import logging
from dataclasses import dataclass
from typing import Tuple


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def _secret(name: str) -> str:
    """Read a Streamlit secret, returning "" when secrets.toml is missing."""
    try:
        import streamlit as st
        return str(st.secrets.get(name, "") or "")
    except Exception:
        return ""


def _lookup(name: str, default: str = "") -> str:
    return _secret(name) or os.environ.get(name, "") or default


def _lookup_int(name: str, default: int) -> int:
    raw = _lookup(name)
    try:
        return int(raw) if raw else default
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring non-integer %s=%r", name, raw)
        return default


@dataclass(frozen=True)
class Settings:
    gemini_api_key: str = ""
    student_model: str = "gemini-2.5-pro"
    attendance_model: str = "gemini-2.5-flash"
    chat_model: str = "gemini-2.5-flash"
    thinking_model: str = "gemini-2.5-pro"
    extraction_timeout: int = 60
    default_password: str = "password123"
    default_total_fees: int = 50000
    manual_installment_total: int = 25000
    installment_due_dates: Tuple[str, str] = ("2024-08-15", "2025-02-15")
    log_level: str = "INFO"


def load_settings() -> Settings:
    # API_KEY is accepted as a legacy alias
    api_key = _lookup("GEMINI_API_KEY") or _lookup("API_KEY")
    return Settings(
        gemini_api_key=api_key.strip(),
        student_model=_lookup("GEMINI_STUDENT_MODEL", Settings.student_model),
        attendance_model=_lookup("GEMINI_ATTENDANCE_MODEL", Settings.attendance_model),
        chat_model=_lookup("GEMINI_CHAT_MODEL", Settings.chat_model),
        thinking_model=_lookup("GEMINI_THINKING_MODEL", Settings.thinking_model),
        extraction_timeout=_lookup_int("EXTRACTION_TIMEOUT", Settings.extraction_timeout),
        default_password=_lookup("DEFAULT_STUDENT_PASSWORD", Settings.default_password),
        default_total_fees=_lookup_int("DEFAULT_TOTAL_FEES", Settings.default_total_fees),
        log_level=_lookup("LOG_LEVEL", Settings.log_level).upper(),
    )


def configure_logging(settings: Settings = None) -> None:
    level = (settings or load_settings()).log_level
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
