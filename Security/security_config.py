"""
APP CONFIG
==========
Centralized settings loaded from environment.
"""

# FLOW:
# - Pick the active .env file, load it, expose APP_SETTINGS.
# WHY:
# - Keeps per-environment tuning in one place.
# HOW:
# - Reads env vars once and stores them in a dict.

from __future__ import annotations

import os
import logging
import dotenv


DEFAULT_DATABASE_URL = "sqlite:///./field_encryption_demo.db"


# .env files live in the directory the app or script is started from
def config_dir() -> str:
    return os.getcwd()


def get_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).lower() == "true"


def get_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def get_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return default
    return [item.strip() for item in raw.split(",") if item.strip()]


def app_env() -> str:
    return (os.getenv("APP_ENV") or os.getenv("NODE_ENV") or "").strip().lower()


def is_production() -> bool:
    return app_env() in {"prod", "production"}


def _env_name() -> str:
    env = app_env()
    if env in {"prod", "production"}:
        return ".env.production"
    if env in {"local", "localhost", "dev", "development"}:
        return ".env.localhost"

    # Auto-select based on ENV_ACTIVE flag if APP_ENV is not set
    prod_path = os.path.join(config_dir(), ".env.production")

    def _is_active(path: str) -> bool:
        if not os.path.exists(path):
            return False
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                if line.strip().startswith("ENV_ACTIVE="):
                    return line.split("=", 1)[1].strip().strip('"').lower() == "true"
        return False

    if _is_active(prod_path):
        return ".env.production"
    return ".env.localhost"


def env_path() -> str:
    return os.path.join(config_dir(), _env_name())


def load_env() -> None:
    dotenv.load_dotenv(env_path())
    dotenv.load_dotenv(os.path.join(config_dir(), ".env"))


def load_settings() -> dict:
    production = is_production()
    return {
        "APP_ENV": app_env() or "development",
        "IS_PRODUCTION": production,
        "HOST": os.getenv("HOST", "0.0.0.0"),
        "PORT": get_int("PORT", 3001),
        "DATABASE_URL": os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
        "CORS_ORIGINS": get_list("CORS_ORIGINS", [] if production else ["*"]),
        "LOG_DIR": os.getenv("LOG_DIR", "logs"),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO" if production else "DEBUG").upper(),
    }


load_env()

# Optional startup log
if get_bool("APP_ENV_LOG", False):
    logging.getLogger("security.env").info("Active env file: %s", env_path())

APP_SETTINGS = load_settings()
