from functools import lru_cache
import json
import logging
import os
import re
from typing import Any

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

EXPIRATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd])\s*$")
EXPIRATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_expiration(value: str | int) -> int:
    """
    Convert an expiration string such as "15m", "1h" or "7d" to seconds.

    Plain integers (or digit-only strings) are treated as seconds.

    Raises:
        ValueError: If the value can't be parsed or is not positive
    """
    if isinstance(value, int):
        seconds = value
    elif value.strip().isdigit():
        seconds = int(value.strip())
    else:
        match = EXPIRATION_PATTERN.match(value.lower())
        if not match:
            raise ValueError(f"Invalid expiration value: {value!r}")
        amount, unit = match.groups()
        seconds = int(amount) * EXPIRATION_UNITS[unit]

    if seconds <= 0:
        raise ValueError(f"Expiration must be positive, got {value!r}")
    return seconds


def parse_str_list(v: Any) -> list[str]:
    if isinstance(v, list):
        return [str(item) for item in v]
    if isinstance(v, str) and v.strip().startswith("[") and v.strip().endswith("]"):
        try:
            parsed = json.loads(v)
            if isinstance(parsed, list):
                return [str(item) for item in parsed]
        except json.JSONDecodeError:
            pass
    sep = "," if "," in v else ";"
    return [item.strip() for item in v.split(sep) if item.strip()]


class RedisConfig(BaseModel):
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DATABASE: str = "0"
    REDIS_SOCKET_TIMEOUT_SECONDS: float = Field(5.0, gt=0)

    model_config = ConfigDict(extra="ignore")

    @property
    def dsn(self) -> str:
        return (
            f"redis://:"
            f"{self.REDIS_PASSWORD}@"
            f"{self.REDIS_HOST}:"
            f"{self.REDIS_PORT}/"
            f"{self.REDIS_DATABASE}"
        )


class SentryConfig(BaseModel):
    SENTRY_DSN: str | None = None
    SENTRY_ENV: str = "development"
    SENTRY_ENABLED: bool = False

    model_config = ConfigDict(extra="ignore")


class CeleryConfig(BaseModel):
    CELERY_BROKER_URL: str | None = None
    CELERY_RESULT_BACKEND: str | None = None
    CELERY_TASK_ALWAYS_EAGER: bool = False
    CELERY_MAIL_MAX_RETRIES: int = Field(5, ge=0)

    model_config = ConfigDict(extra="ignore")


class MailConfig(BaseModel):
    EMAIL_SERVER: str = "localhost"
    EMAIL_PORT: int = 587
    EMAIL_USER: str = ""
    EMAIL_PASSWORD: str = ""
    EMAIL_FROM: str = "no-reply@example.com"
    EMAIL_FROM_NAME: str = "tokenlife"
    EMAIL_USE_TLS: bool = False
    EMAIL_STARTTLS: bool = True
    VALIDATE_CERTS: bool = True

    # Links in mails point at the frontend, which posts the token back to the API
    FRONTEND_URL: str = "http://localhost:3000"
    VERIFY_EMAIL_PATH: str = "/verify-email"
    RESET_PASSWORD_PATH: str = "/reset-password"

    model_config = ConfigDict(extra="ignore")


class JWTConfig(BaseModel):
    JWT_ACCESS_SECRET_KEY: str = "change-me-access-secret-min-32-characters"
    JWT_REFRESH_SECRET_KEY: str = "change-me-refresh-secret-min-32-characters"
    JWT_RESET_SECRET_KEY: str = "change-me-reset-secret-min-32-characters"

    ALGORITHM: str = "HS256"

    ACCESS_TOKEN_EXPIRES: str = "15m"
    REFRESH_TOKEN_EXPIRES: str = "7d"
    RESET_TOKEN_EXPIRES: str = "1h"

    model_config = ConfigDict(extra="ignore")

    @field_validator(
        "ACCESS_TOKEN_EXPIRES",
        "REFRESH_TOKEN_EXPIRES",
        "RESET_TOKEN_EXPIRES",
    )
    @classmethod
    def validate_expiration(cls, v: str) -> str:
        parse_expiration(v)
        return v

    @property
    def access_token_ttl(self) -> int:
        return parse_expiration(self.ACCESS_TOKEN_EXPIRES)

    @property
    def refresh_token_ttl(self) -> int:
        return parse_expiration(self.REFRESH_TOKEN_EXPIRES)

    @property
    def reset_token_ttl(self) -> int:
        return parse_expiration(self.RESET_TOKEN_EXPIRES)


class AuthConfig(BaseModel):
    PASSWORD_HASH_COST: int = Field(3, gt=0)
    PASSWORD_HASH_MEMORY_KIB: int = Field(65_536, ge=8)

    MAX_REFRESH_TOKENS: int = Field(5, gt=0)
    MAX_SESSIONS: int = Field(3, gt=0)

    SESSION_TTL_SECONDS: int = Field(86_400, gt=0)
    SESSION_LIST_TTL_SECONDS: int = Field(86_400, gt=0)
    SESSION_COOKIE_NAME: str = "session_id"

    LOGIN_RECORD_TTL_SECONDS: int = Field(604_800, gt=0)
    LAST_LOGIN_TTL_SECONDS: int = Field(2_592_000, gt=0)

    REVOKE_FAMILY_ON_REUSE: bool = True

    MOBILE_USER_AGENTS: list[str] = Field(
        [
            "react-native",
            "expo",
            "flutter",
            "ionic",
            "cordova",
            "mobile-app",
            "okhttp",
            "cfnetwork",
            "dalvik",
        ]
    )

    model_config = ConfigDict(extra="ignore")

    @field_validator("MOBILE_USER_AGENTS", mode="before")
    @classmethod
    def parse_user_agents(cls, v: Any) -> list[str]:
        return [item.lower() for item in parse_str_list(v)]


class AppConfig(BaseModel):
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    TESTING: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_LEVEL_FILE: str = "WARNING"
    LOG_DIR: str = "logs"

    CORS_ALLOWED_ORIGINS: list[str] = Field(["*"])
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOWED_METHODS: list[str] = Field(["*"])
    CORS_ALLOWED_HEADERS: list[str] = Field(["*"])
    CORS_EXPOSE_HEADERS: list[str] = Field(["Retry-After"])

    PROJECT_NAME: str = "tokenlife"

    model_config = ConfigDict(extra="ignore")

    @field_validator(
        "CORS_ALLOWED_ORIGINS",
        "CORS_ALLOWED_METHODS",
        "CORS_ALLOWED_HEADERS",
        "CORS_EXPOSE_HEADERS",
        mode="before",
    )
    @classmethod
    def parse_cors_list(cls, v: Any) -> list[str]:
        return parse_str_list(v)


class Config(BaseModel):
    app: AppConfig
    jwt: JWTConfig
    auth: AuthConfig
    redis: RedisConfig
    sentry: SentryConfig
    celery: CeleryConfig
    mail: MailConfig

    model_config = ConfigDict(extra="ignore")


@lru_cache
def get_settings() -> Config:
    """
    Cached settings factory. Override in tests via monkeypatching or dependency overrides.
    """
    env_filename = ".env.test" if os.getenv("TESTING") == "true" else ".env"
    env_file_values = dotenv_values(env_filename)
    merged_env: dict[str, Any] = {
        k: v
        for k, v in {**env_file_values, **dict(os.environ)}.items()
        if v is not None
    }

    return Config(
        app=AppConfig(**merged_env),
        jwt=JWTConfig(**merged_env),
        auth=AuthConfig(**merged_env),
        redis=RedisConfig(**merged_env),
        sentry=SentryConfig(**merged_env),
        celery=CeleryConfig(**merged_env),
        mail=MailConfig(**merged_env),
    )


config = get_settings()
