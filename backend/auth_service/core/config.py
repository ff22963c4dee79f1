# auth_service/core/config.py
import os
import re
from urllib.parse import quote_plus, urlparse

from dotenv import load_dotenv


def str_to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def merge_unique(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in items:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$", re.IGNORECASE)
_DURATION_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration_minutes(value: str | None, default: int) -> int:
    """
    Parse "1d" / "12h" / "30m" / "3600" (plain number = seconds) into whole minutes.
    """
    if not value:
        return default
    match = _DURATION_RE.match(value)
    if not match:
        raise RuntimeError(f"Invalid duration: {value!r}")
    seconds = int(match.group(1)) * _DURATION_UNIT_SECONDS[match.group(2).lower()]
    return max(1, seconds // 60)


def supabase_db_host(supabase_url: str | None) -> str:
    """Supabase serves Postgres on db.<project host>."""
    if not supabase_url:
        return ""
    try:
        hostname = urlparse(supabase_url).hostname
    except ValueError:
        return ""
    return f"db.{hostname}" if hostname else ""


class Settings:
    def __init__(self) -> None:
        self.ENV = os.getenv("ENV", "dev").strip().lower()  # dev | prod
        if self.ENV != "prod":
            # Load .env only for non-prod so prod can't be accidentally influenced by local files.
            load_dotenv()

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
        self.PORT = int(os.getenv("PORT", "4000"))

        # ----------------------------
        # Database
        # ----------------------------
        self.DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
        self.SUPABASE_URL = os.getenv("SUPABASE_URL", "").strip()
        self.DB_HOST = os.getenv("DB_HOST", "") or supabase_db_host(self.SUPABASE_URL) or "localhost"
        self.DB_PORT = int(os.getenv("DB_PORT", "5432") or 5432)
        self.DB_USER = os.getenv("DB_USER", "postgres")
        self.DB_PASSWORD = os.getenv("DB_PASSWORD", "postgres")
        self.DB_NAME = os.getenv("DB_NAME", "postgres")
        # Supabase requires TLS; default it on there unless explicitly configured.
        self.DB_SSL = str_to_bool(os.getenv("DB_SSL"), default=bool(self.SUPABASE_URL))

        # ----------------------------
        # CORS
        # ----------------------------
        dev_defaults = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]

        cors_from_env = parse_csv(os.getenv("CORS_ORIGINS")) + parse_csv(os.getenv("FRONTEND_ORIGIN"))
        if self.ENV == "prod":
            self.CORS_ORIGINS = merge_unique(cors_from_env)
        else:
            self.CORS_ORIGINS = merge_unique(cors_from_env + dev_defaults)

        # ----------------------------
        # Auth / JWT
        # ----------------------------
        self.JWT_SECRET = os.getenv("JWT_SECRET", "")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.ACCESS_TOKEN_EXPIRE_MINUTES = parse_duration_minutes(
            os.getenv("JWT_EXPIRES_IN"),
            default=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440")),
        )
        self.BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

        self.AUTH_COOKIE_NAME = os.getenv("AUTH_COOKIE_NAME", "token").strip() or "token"
        self.AUTH_COOKIE_SAMESITE = os.getenv("AUTH_COOKIE_SAMESITE", "strict").strip().lower()

        # ----------------------------
        # Rate limiting / headers
        # ----------------------------
        self.RATE_LIMIT_ENABLED = str_to_bool(os.getenv("RATE_LIMIT_ENABLED"), default=True)
        self.AUTH_RATE_LIMIT_MAX_REQUESTS = int(os.getenv("AUTH_RATE_LIMIT_MAX_REQUESTS", "20"))
        self.AUTH_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("AUTH_RATE_LIMIT_WINDOW_SECONDS", str(15 * 60)))
        self.SECURITY_HEADERS_ENABLED = str_to_bool(os.getenv("SECURITY_HEADERS_ENABLED"), default=True)

        # Final: fail fast in prod
        self._validate_prod()

    def _validate_prod(self) -> None:
        if self.ENV != "prod":
            return

        missing: list[str] = []

        if not self.JWT_SECRET:
            missing.append("JWT_SECRET")
        if not self.DATABASE_URL:
            if not os.getenv("DB_HOST") and not self.SUPABASE_URL:
                missing.append("DB_HOST")
            if not os.getenv("DB_PASSWORD"):
                missing.append("DB_PASSWORD")

        if not self.CORS_ORIGINS:
            missing.append("CORS_ORIGINS")

        cors_joined = ",".join(self.CORS_ORIGINS)
        if "localhost" in cors_joined or "127.0.0.1" in cors_joined:
            raise RuntimeError("CORS_ORIGINS contains localhost/dev origins in prod")

        if self.AUTH_COOKIE_SAMESITE == "none":
            raise RuntimeError("AUTH_COOKIE_SAMESITE=none is not allowed for the session cookie")

        if missing:
            raise RuntimeError(f"Missing required prod env vars: {', '.join(missing)}")

    @property
    def is_prod(self) -> bool:
        return self.ENV == "prod"

    @property
    def access_token_max_age_seconds(self) -> int:
        return self.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        encoded_password = quote_plus(self.DB_PASSWORD)
        url = (
            f"postgresql+psycopg2://{self.DB_USER}:{encoded_password}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )
        if self.DB_SSL:
            url += "?sslmode=require"
        return url

    def safe_database_summary(self) -> dict[str, object]:
        """Connection info that is safe to log (no credentials)."""
        if self.DATABASE_URL:
            parsed = urlparse(self.DATABASE_URL)
            return {
                "host": parsed.hostname,
                "port": parsed.port,
                "database": (parsed.path or "").lstrip("/") or None,
                "ssl": "sslmode=require" in (parsed.query or ""),
            }
        return {"host": self.DB_HOST, "port": self.DB_PORT, "database": self.DB_NAME, "ssl": self.DB_SSL}


settings = Settings()


def require_jwt_secret() -> None:
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set")
