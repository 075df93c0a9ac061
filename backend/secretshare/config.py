from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

TURNSTILE_VERIFY_URL = "https://challenges.cloudflare.com/turnstile/v0/siteverify"


class RouteRateLimit(BaseModel):
    requests_per_hour: int = Field(..., gt=0)
    requests_per_minute: int = Field(..., gt=0)


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    env: str = "development"
    host: str = "127.0.0.1"
    port: int = 8081

    # Security
    server_encryption_enabled: bool = True
    server_encryption_key: str = ""
    captcha_enabled: bool = True
    captcha_secret_key: str = ""
    captcha_verify_url: str = TURNSTILE_VERIFY_URL
    captcha_timeout_seconds: float = 10.0

    # Secrets
    allowed_expiry_minutes: list[int] = [10, 30, 60, 24 * 60, 7 * 24 * 60]
    default_expiry_minutes: int = 10
    expiry_tolerance_seconds: float = 1.0
    max_secret_size_bytes: int = 65_536
    max_custom_name_length: int = 32
    storage_path: str = "data/secrets"
    cleanup_interval_seconds: int = Field(30, gt=0)

    # Rate Limiting
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"
    rate_limit_routes: dict[str, RouteRateLimit] = {
        "create_secret": RouteRateLimit(requests_per_hour=1000, requests_per_minute=100),
        "view_secret": RouteRateLimit(requests_per_hour=1000, requests_per_minute=2),
        "view_secret_by_name": RouteRateLimit(requests_per_hour=1000, requests_per_minute=100),
    }
    rate_limit_default: RouteRateLimit = RouteRateLimit(
        requests_per_hour=1000, requests_per_minute=100
    )

    # CORS
    cors_origins: list[str] | str = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Logging
    log_level: str = "info"
    log_format: str = "console"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("allowed_expiry_minutes")
    @classmethod
    def validate_allowed_expiry_minutes(cls, v: list[int]) -> list[int]:
        if not v:
            raise ValueError("allowed_expiry_minutes cannot be empty")
        if any(minutes <= 0 for minutes in v):
            raise ValueError("allowed_expiry_minutes must all be positive")
        return sorted(set(v))

    @model_validator(mode="after")
    def validate_consistency(self) -> "Settings":
        if self.default_expiry_minutes not in self.allowed_expiry_minutes:
            raise ValueError("default_expiry_minutes must be one of allowed_expiry_minutes")
        if self.is_production:
            if self.server_encryption_enabled and not self.server_encryption_key:
                raise ValueError(
                    "SERVER_ENCRYPTION_KEY is required when server-side encryption is enabled"
                )
            if self.captcha_enabled and not self.captcha_secret_key:
                raise ValueError("CAPTCHA_SECRET_KEY is required when captcha is enabled")
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    def limits_for(self, route_name: str) -> RouteRateLimit:
        """Rate limits for a named route, falling back to the default limits."""
        return self.rate_limit_routes.get(route_name, self.rate_limit_default)
