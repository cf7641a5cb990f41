import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load variables from a local .env file, if present
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    database_url: str = field(
        default_factory=lambda: os.environ.get("DATABASE_URL", "sqlite:///./lodge.db")
    )
    # "sql" for the SQLAlchemy store, "memory" for the in-memory store
    store: str = field(default_factory=lambda: os.environ.get("LODGE_STORE", "sql"))

    secret_key: str = field(
        default_factory=lambda: os.environ.get("SECRET_KEY", "CHANGE_THIS_SECRET_IN_REAL_PROJECT")
    )
    access_token_expire_minutes: int = field(
        default_factory=lambda: int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
    )

    session_lifetime_hours: int = field(
        default_factory=lambda: int(os.environ.get("SESSION_LIFETIME_HOURS", "24"))
    )
    session_cookie_name: str = field(
        default_factory=lambda: os.environ.get("SESSION_COOKIE_NAME", "lodge_session")
    )
    in_production: bool = field(default_factory=lambda: _env_bool("IN_PRODUCTION", False))

    rate_limit: str = field(default_factory=lambda: os.environ.get("RATE_LIMIT", "60/minute"))
    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"))


settings = Settings()
