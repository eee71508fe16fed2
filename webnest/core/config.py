import os
from typing import List, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from ..domain.models import ActorKind

SERVICE_KINDS = {
    "client": ActorKind.USER,
    "developer": ActorKind.DEVELOPER,
    "admin": ActorKind.ADMIN,
}

DEFAULT_PORTS = {"client": 5001, "developer": 5002, "admin": 5003}

SERVICE_TITLES = {
    "client": "WebNest Client Service",
    "developer": "WebNest Developer Service",
    "admin": "WebNest Admin Service",
}


class Settings:
    """Centralised configuration for one WebNest service, sourced from environment variables."""

    def __init__(self, service: Optional[str] = None) -> None:
        load_dotenv()
        self.service = (service or os.getenv("WEBNEST_SERVICE", "client")).strip().lower()
        if self.service not in SERVICE_KINDS:
            raise RuntimeError(
                f"WEBNEST_SERVICE must be one of {', '.join(SERVICE_KINDS)}, got {self.service!r}"
            )
        self.actor_kind = SERVICE_KINDS[self.service]
        self.title = SERVICE_TITLES[self.service]
        self.port = self._get_int("PORT", default=DEFAULT_PORTS[self.service])

        self.mongodb_uri = os.getenv("MONGODB_URI", "mongodb://localhost:27017/webnest")
        self.mongodb_database = os.getenv("MONGODB_DATABASE") or self._database_from_uri(self.mongodb_uri)

        self.jwt_secret = os.getenv("JWT_SECRET", "change-me")
        self.jwt_expire_minutes = self._get_int("JWT_EXPIRE_MINUTES", default=15)
        self.refresh_token_days = self._get_int("REFRESH_TOKEN_DAYS", default=30)
        self.session_secret = os.getenv("SESSION_SECRET", "change-me")
        self.session_ttl_days = self._get_int("SESSION_TTL_DAYS", default=30)
        self.session_cookie_name = os.getenv("SESSION_COOKIE_NAME", "webnest_sid")
        self.session_cookie_secure = self._get_bool("SESSION_COOKIE_SECURE", default=False)
        self.trust_proxy_headers = self._get_bool("TRUST_PROXY_HEADERS", default=False)

        self.otp_ttl_minutes = self._get_int("OTP_TTL_MINUTES", default=5)
        self.otp_max_attempts = self._get_int("OTP_MAX_ATTEMPTS", default=5)
        self.otp_block_minutes = self._get_int("OTP_BLOCK_MINUTES", default=15)
        self.otp_on_login = self._get_bool("OTP_ON_LOGIN", default=self.service == "admin")

        self.scheduler_enabled = self._get_bool("SCHEDULER_ENABLED", default=self.service == "client")
        self.reminder_interval_seconds = self._get_int("REMINDER_INTERVAL_SECONDS", default=3600)
        self.session_purge_interval_seconds = self._get_int("SESSION_PURGE_INTERVAL_SECONDS", default=3600)

        self.admin_default_email = os.getenv("ADMIN_EMAIL")
        self.admin_default_password = os.getenv("ADMIN_PASSWORD")

        self.frontend_url = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = [self.frontend_url]

    @property
    def uses_memory_store(self) -> bool:
        return self.mongodb_uri.startswith("memory://")

    @staticmethod
    def _database_from_uri(uri: str) -> str:
        path = urlparse(uri).path.lstrip("/")
        return path or "webnest"

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        value = os.getenv(key)
        if value is None:
            return default
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise RuntimeError(f"Environment variable {key} must be a boolean")

    def insecure_secrets(self) -> List[str]:
        return [
            name
            for name, value in (("JWT_SECRET", self.jwt_secret), ("SESSION_SECRET", self.session_secret))
            if value == "change-me"
        ]
