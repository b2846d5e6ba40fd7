"""Environment driven configuration for the Bhakthas backend."""
from __future__ import annotations

import os
import warnings
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default) in {"1", "true", "True"}


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///bhakthas.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Signed auth tokens expire after a day
    TOKEN_MAX_AGE = int(os.getenv("TOKEN_MAX_AGE", "86400"))

    # Resend email configuration
    RESEND_API_KEY = os.getenv("RESEND_API_KEY")
    EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Bhakthas <onboarding@resend.dev>")
    EMAIL_ENABLED = _env_flag("EMAIL_ENABLED", "1")

    CHANT_HISTORY_PATH = os.getenv(
        "CHANT_HISTORY_PATH", str(Path.home() / ".bhakthas" / "mantra-achievements.json")
    )

    CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",")]


def ensure_secret_key(app) -> None:
    """Fall back to a development key when none is configured."""
    if app.config.get("SECRET_KEY"):
        return
    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    app.config["SECRET_KEY"] = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
