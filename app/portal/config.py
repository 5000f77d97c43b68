import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    auto_create_schema: bool

    session_backend: str
    session_lifetime_hours: int
    password_hash_method: str

    admin_email: str
    admin_password: str
    admin_signup_emails: tuple[str, ...]

    news_feed_limit: int
    chat_history_limit: int

    storage_backend: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getint(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).") from e


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name)
    if not raw:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _getlist(name: str) -> tuple[str, ...]:
    return tuple(p.strip().lower() for p in _getenv(name).split(",") if p.strip())


def load_settings() -> Settings:
    return Settings(
        # SESSION_SECRET is the name older deployments used.
        secret_key=_getenv("SECRET_KEY") or _getenv("SESSION_SECRET", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///portal.db"),
        auto_create_schema=_getbool("AUTO_CREATE_SCHEMA", True),
        session_backend=_getenv("SESSION_BACKEND", "database").lower(),
        session_lifetime_hours=_getint("SESSION_LIFETIME_HOURS", 24),
        password_hash_method=_getenv("PASSWORD_HASH_METHOD", "pbkdf2:sha256:600000"),
        admin_email=_getenv("ADMIN_EMAIL", "admin@portal.edu.gh").lower(),
        admin_password=os.environ.get("ADMIN_PASSWORD") or "admin123",
        admin_signup_emails=_getlist("ADMIN_SIGNUP_EMAILS"),
        news_feed_limit=_getint("NEWS_FEED_LIMIT", 5),
        chat_history_limit=_getint("CHAT_HISTORY_LIMIT", 50),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "nyc3"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "AUTO_CREATE_SCHEMA": s.auto_create_schema,
        "SESSION_BACKEND": s.session_backend,
        "SESSION_LIFETIME_HOURS": s.session_lifetime_hours,
        "PASSWORD_HASH_METHOD": s.password_hash_method,
        "ADMIN_EMAIL": s.admin_email,
        "ADMIN_PASSWORD": s.admin_password,
        "ADMIN_SIGNUP_EMAILS": s.admin_signup_emails,
        "NEWS_FEED_LIMIT": s.news_feed_limit,
        "CHAT_HISTORY_LIMIT": s.chat_history_limit,
        "STORAGE_BACKEND": s.storage_backend,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # file upload limits (25MB)
        "MAX_CONTENT_LENGTH": 25 * 1024 * 1024,
    }
