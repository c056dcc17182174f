"""
Runtime settings and logging setup.

All environment-driven configuration lives here.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from dotenv import load_dotenv


LOG_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"
DEVELOPMENT_ENVS = {"dev", "development", "local"}


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here.
    """
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-3.5-turbo"
    openai_timeout: float = 30.0
    host: str = "0.0.0.0"
    port: int = 3001
    app_env: str = "development"
    cors_origins: Tuple[str, ...] = ()
    log_level: str = "INFO"
    log_file: Optional[str] = None
    usage_limits_path: Optional[str] = None
    knowledge_base_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "")
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", "").strip() or None,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-3.5-turbo"),
            openai_timeout=float(os.getenv("OPENAI_TIMEOUT", "30")),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3001")),
            app_env=os.getenv("APP_ENV", "development"),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=os.getenv("LOG_FILE") or None,
            usage_limits_path=os.getenv("USAGE_LIMITS_PATH") or None,
            knowledge_base_path=os.getenv("KNOWLEDGE_BASE_PATH") or None,
        )

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() in DEVELOPMENT_ENVS

    @property
    def allowed_origins(self) -> Tuple[str, ...]:
        """CORS allow-list: everything in development, the configured list elsewhere."""
        if self.is_development:
            return ("*",)
        return self.cors_origins


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv()
    return Settings.from_env()


def configure_logging(settings: Settings) -> None:
    """Route application logs to stderr and, when LOG_FILE is set, to that file."""
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )
