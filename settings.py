"""
Settings - environment driven configuration.

All values come from environment variables (a .env file is loaded if present).
Use get_settings() to obtain the shared immutable instance.
"""

import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_JWT_SECRET = "fallback-secret"
DEFAULT_ADMIN_PASSWORD = "admin123"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": "seconds", "s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def parse_duration(value: str) -> timedelta:
    """Parse '7d', '12h', '30m', '45s' or a bare number of seconds."""
    match = _DURATION_RE.match(value or "")
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class AuthSettings:
    secret_key: str = field(default_factory=lambda: os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET))
    algorithm: str = "HS256"
    expire: timedelta = field(default_factory=lambda: parse_duration(os.getenv("JWT_EXPIRE", "7d")))
    admin_email: str = field(default_factory=lambda: os.getenv("ADMIN_EMAIL", "admin@example.com"))
    admin_password: str = field(default_factory=lambda: os.getenv("ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD))
    # passlib hash; takes precedence over the plain password when set
    admin_password_hash: Optional[str] = field(default_factory=lambda: os.getenv("ADMIN_PASSWORD_HASH") or None)


@dataclass(frozen=True)
class DatabaseSettings:
    url: Optional[str] = field(default_factory=lambda: os.getenv("MONGODB_URI") or None)
    name: str = field(default_factory=lambda: os.getenv("DATABASE_NAME", "landingpage"))
    retry_seconds: float = field(default_factory=lambda: float(os.getenv("DB_RETRY_SECONDS", "5")))


@dataclass(frozen=True)
class UploadSettings:
    max_file_size: int = field(default_factory=lambda: int(os.getenv("MAX_FILE_SIZE", str(5 * 1024 * 1024))))
    allowed_types: List[str] = field(
        default_factory=lambda: _split_csv(
            os.getenv("ALLOWED_FILE_TYPES", "image/jpeg,image/png,image/webp,image/jpg")
        )
    )
    cloud_name: str = field(default_factory=lambda: os.getenv("CLOUDINARY_CLOUD_NAME", ""))
    api_key: str = field(default_factory=lambda: os.getenv("CLOUDINARY_API_KEY", ""))
    api_secret: str = field(default_factory=lambda: os.getenv("CLOUDINARY_API_SECRET", ""))
    folder: str = field(default_factory=lambda: os.getenv("CLOUDINARY_FOLDER", "landingpage/projects"))
    timeout_seconds: int = 30

    @property
    def host_configured(self) -> bool:
        return bool(self.cloud_name)


@dataclass(frozen=True)
class CorsSettings:
    frontend_url: Optional[str] = field(default_factory=lambda: os.getenv("FRONTEND_URL") or None)
    custom_domain: Optional[str] = field(default_factory=lambda: os.getenv("FRONTEND_CUSTOM_DOMAIN") or None)

    @property
    def origins(self) -> List[str]:
        origins = [
            "http://localhost:3000",
            "http://localhost:5500",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5500",
        ]
        if self.frontend_url:
            origins.insert(0, self.frontend_url.rstrip("/"))
        return origins

    @property
    def origin_regex(self) -> str:
        patterns = [r"https://.*\.vercel\.app", r"https://.*\.now\.sh"]
        if self.custom_domain:
            patterns.append(r"https?://" + re.escape(self.custom_domain))
        return "^(" + "|".join(patterns) + ")$"


@dataclass(frozen=True)
class Settings:
    """
    Root settings container.

    Usage:
        settings = get_settings()
        settings.auth.expire
    """

    auth: AuthSettings = field(default_factory=AuthSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    upload: UploadSettings = field(default_factory=UploadSettings)
    cors: CorsSettings = field(default_factory=CorsSettings)

    port: int = field(default_factory=lambda: int(os.getenv("PORT", "3000")))
    environment: str = field(default_factory=lambda: os.getenv("ENVIRONMENT", "development"))

    def validate(self) -> List[str]:
        """Return warnings about insecure or missing configuration."""
        issues = []

        if self.auth.secret_key == DEFAULT_JWT_SECRET:
            issues.append("WARNING: JWT_SECRET not set. Tokens are signed with the fallback secret.")

        if not self.auth.admin_password_hash and self.auth.admin_password == DEFAULT_ADMIN_PASSWORD:
            issues.append("WARNING: ADMIN_PASSWORD not set. The default admin password is active.")

        if not self.database.url:
            issues.append("WARNING: No MONGODB_URI provided. Running without database.")

        if not self.upload.host_configured:
            issues.append("WARNING: CLOUDINARY_CLOUD_NAME not set. Image uploads are disabled.")

        return issues


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
