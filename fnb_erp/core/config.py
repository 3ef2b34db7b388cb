import json
from decimal import Decimal
from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_WEAK_SECRETS = {"", "change_me", "dev-secret-key-change-before-prod", "test-secret-key"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


def _parse_origin_list(raw) -> List[str]:
    """Accept a JSON array, a comma separated string or a list."""
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = raw.strip()
        if raw.startswith("["):
            raw = json.loads(raw)
            if not isinstance(raw, list):
                raise ValueError("CORS_ORIGINS JSON value must be a list")
        else:
            raw = raw.split(",")
    if not isinstance(raw, list):
        raise ValueError(raw)
    return [str(origin).strip() for origin in raw if str(origin).strip()]


class Settings(BaseSettings):
    app_name: str = "F&B Supply Chain Backend"
    env: str = "dev"
    log_level: str = "INFO"
    api_timeout_hint_ms: int = Field(default=300000, ge=1000, le=1_800_000)

    # AUTH (tokens are minted by the identity provider)
    secret_key: str
    jwt_issuer: str | None = None
    access_token_expire_minutes: int = 60

    # DATABASE
    database_url: str
    db_pool_size: int = Field(default=10, ge=1, le=100)
    db_max_overflow: int = Field(default=20, ge=0, le=200)
    db_pool_timeout_seconds: int = Field(default=30, ge=1, le=300)
    db_pool_recycle_seconds: int = Field(default=1800, ge=30, le=86_400)

    # WORKFLOWS
    default_currency: str = Field(default="USD", min_length=3, max_length=3)
    # transfers valued strictly above this wait for manager approval
    transfer_approval_threshold: Decimal = Field(default=Decimal("1000.00"), ge=0)
    sod_transfer_fulfill: bool = False
    sod_request_confirm: bool = True

    # CORS
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    cors_origin_regex: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        enable_decoding=False,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value) -> List[str]:
        return _parse_origin_list(value)

    @field_validator("log_level", "default_currency", mode="before")
    @classmethod
    def upper_case(cls, value: str) -> str:
        return str(value).strip().upper()

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, value: str) -> str:
        if value not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(sorted(_LOG_LEVELS))}")
        return value

    @property
    def is_production(self) -> bool:
        return self.env.lower().strip() in {"prod", "production"}

    @model_validator(mode="after")
    def check_production_settings(self) -> "Settings":
        if not self.is_production:
            return self
        secret = self.secret_key.strip()
        if secret in _WEAK_SECRETS or len(secret) < 32:
            raise ValueError("SECRET_KEY must be a strong random value in production")
        if self.database_url.lower().startswith("sqlite"):
            # stock movements rely on SELECT ... FOR UPDATE
            raise ValueError("DATABASE_URL must point at PostgreSQL in production")
        if "*" in self.cors_origins or self.cors_origin_regex:
            raise ValueError("CORS must list explicit origins in production")
        return self


settings = Settings()
