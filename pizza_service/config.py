import os
from dataclasses import dataclass

try:
    from dotenv import load_dotenv
except ImportError:
    # python-dotenv is a development convenience; real deployments set the environment.
    load_dotenv = None

if load_dotenv is not None:
    load_dotenv()


_TRUTHY = {"1", "true", "yes", "y", "on"}
_FALSY = {"0", "false", "no", "n", "off"}


def _env_bool(name: str, default: bool) -> bool:
    """Read a yes/no environment variable; unset or unrecognized values give `default`."""
    raw = (os.environ.get(name) or "").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    Secrets (JWT secret, factory and metrics API keys) come from environment
    variables or a .env file. Never hardcode them.
    """

    # -----------------
    # Core
    # -----------------
    VERSION: str = os.environ.get("PIZZA_VERSION", "20240101.000000")

    # Preferred: PIZZA_DATABASE_URL (or DATABASE_URL) for Postgres.
    # Fallback: PIZZA_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("PIZZA_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("PIZZA_DB_PATH", "./pizza_service.sqlite")
    )

    # Orders returned per page by GET /api/order
    DB_LIST_PER_PAGE: int = int(os.environ.get("PIZZA_LIST_PER_PAGE", "10"))

    # -----------------
    # Auth (JWT)
    # -----------------
    # NOTE: the dev default is fixed so a fresh clone works. Set AUTH_JWT_SECRET in production.
    AUTH_JWT_SECRET: str = os.environ.get("AUTH_JWT_SECRET", "dev_change_me")
    AUTH_TOKEN_EXPIRE_MINUTES: int = int(os.environ.get("AUTH_TOKEN_EXPIRE_MINUTES", "10080"))  # 7 days

    # Default admin, created only when the users table is empty
    AUTH_BOOTSTRAP_ADMIN_NAME: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_NAME", "常用名字")
    AUTH_BOOTSTRAP_ADMIN_EMAIL: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_EMAIL", "a@jwt.com")
    AUTH_BOOTSTRAP_ADMIN_PASSWORD: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_PASSWORD", "admin")

    # -----------------
    # Pizza factory
    # -----------------
    FACTORY_URL: str = os.environ.get("FACTORY_URL", "https://pizza-factory.cs329.click")
    FACTORY_API_KEY: str | None = os.environ.get("FACTORY_API_KEY")
    FACTORY_TIMEOUT_SECONDS: float = float(os.environ.get("FACTORY_TIMEOUT_SECONDS", "30"))

    # -----------------
    # Metrics (OTLP over HTTP)
    # -----------------
    ENABLE_METRICS: bool = _env_bool("ENABLE_METRICS", False)
    METRICS_URL: str = os.environ.get("METRICS_URL", "")
    METRICS_API_KEY: str | None = os.environ.get("METRICS_API_KEY")
    METRICS_SOURCE: str = os.environ.get("METRICS_SOURCE", "jwt-pizza-service")
    METRICS_PERIOD_SECONDS: float = float(os.environ.get("METRICS_PERIOD_SECONDS", "10"))

    # -----------------
    # CORS
    # -----------------
    # The SPA is usually served from a different origin in development.
    CORS_ALLOW_ORIGINS: str = os.environ.get(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173",
    )


def load_config() -> Config:
    return Config()
