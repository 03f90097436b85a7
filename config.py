"""
Configuration and logging setup
Values come from environment variables (a local .env file is loaded first)
"""
import os
import logging.config

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Supabase credentials
    SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
    SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "")
    SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")

    # Key-value storage: supabase | sql | memory
    KV_BACKEND = os.environ.get("KV_BACKEND", "supabase")
    KV_TABLE = os.environ.get("KV_TABLE", "kv_store")
    DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///expenses.db")

    API_PREFIX = os.environ.get("API_PREFIX", "/api")
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Demo account created on startup when enabled
    SEED_DEMO_USER = _env_flag("SEED_DEMO_USER")
    DEMO_USER_EMAIL = os.environ.get("DEMO_USER_EMAIL", "demo@expenses.app")
    DEMO_USER_PASSWORD = os.environ.get("DEMO_USER_PASSWORD", "demo123456")
    DEMO_USER_NAME = os.environ.get("DEMO_USER_NAME", "Demo User")


def configure_logging(level: str = "INFO"):
    """Send application logs to stdout, next to gunicorn's access log"""
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "handlers": ["default"],
            "level": level.upper(),
        },
    })
