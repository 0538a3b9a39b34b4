"""
Application settings

Everything is read from the environment (a local .env file is loaded first).
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, List

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:5174",
    "https://b12-m11-session.web.app",
]


def _flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env(name: str, default: str = "") -> Callable[[], str]:
    return lambda: os.getenv(name, default)


def _origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS")
    origins = [o.strip() for o in raw.split(",") if o.strip()] if raw else list(DEFAULT_ORIGINS)
    client = os.getenv("CLIENT_DOMAIN")
    if client and client not in origins:
        origins.append(client)
    return origins


@dataclass
class Settings:
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "3000")))
    mongodb_uri: str = field(default_factory=_env("MONGODB_URI"))
    database_name: str = field(default_factory=_env("DATABASE_NAME", "localchefbazar"))
    server_selection_timeout_ms: int = field(default_factory=lambda: int(os.getenv("MONGODB_TIMEOUT_MS", "5000")))
    client_domain: str = field(default_factory=lambda: os.getenv("CLIENT_DOMAIN", "http://localhost:5173").rstrip("/"))
    cors_origins: List[str] = field(default_factory=_origins)
    fb_service_key: str = field(default_factory=_env("FB_SERVICE_KEY"))
    stripe_secret_key: str = field(default_factory=_env("STRIPE_SECRET_KEY"))
    require_auth: bool = field(default_factory=lambda: _flag("REQUIRE_AUTH"))
    enforce_unique_indexes: bool = field(default_factory=lambda: _flag("ENFORCE_UNIQUE_INDEXES"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())


settings = Settings()

# Global logging (module-level loggers inherit this)
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
LOGGER = logging.getLogger("localchefbazar")
