"""
Settings - Pydantic-based Configuration Management

Provides centralized configuration management using Pydantic Settings.
Values come from environment variables or a local .env file.

Files that USE this module:
- swappoints.app (loads settings to build the store, services and HTTP app)
- swappoints.adapters.http.api (admin token for operator endpoints)

Files that this module USES:
- swappoints.shared.validators (validation functions for settings)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

from decimal import Decimal  # Exact decimal arithmetic for default rates
from pathlib import Path  # Object-oriented filesystem paths
from typing import Optional  # Type hints for optional values

from pydantic import Field, field_validator  # Data validation and field configuration
from pydantic_settings import BaseSettings, SettingsConfigDict  # Settings management with Pydantic

from swappoints.shared.validators import parse_rate, validate_payment_address


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # --- HTTP server ---
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT", ge=1, le=65535)

    # --- Persistence ---
    store_file: Path = Field(default=Path("./data/ledger.json"), alias="STORE_FILE")
    store_timeout_seconds: float = Field(default=2.0, alias="STORE_TIMEOUT_SECONDS", gt=0, le=30)
    # Degraded mode trades durability for availability; keep it an explicit switch
    store_fallback_enabled: bool = Field(default=True, alias="STORE_FALLBACK_ENABLED")

    # --- Orders ---
    order_ttl_minutes: int = Field(default=30, alias="ORDER_TTL_MINUTES", ge=1, le=1440)
    payment_address: str = Field(
        default="UQCS3J9NntTQTrhpmYcCk45tO3iH2H-6vq5fqqrqKCGhT8bG",
        alias="PAYMENT_ADDRESS",
    )

    # --- Rates (UAH per unit) ---
    default_rate_usdt: Decimal = Field(default=Decimal("46"), alias="DEFAULT_RATE_USDT")
    default_rate_ton: Decimal = Field(default=Decimal("80"), alias="DEFAULT_RATE_TON")

    # --- Access control ---
    admin_token: str = Field(default="", alias="ADMIN_TOKEN")
    password_auth_enabled: bool = Field(default=True, alias="PASSWORD_AUTH_ENABLED")

    # --- Logging (for server deployment) ---
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")
    log_dir: Optional[str] = Field(default=None, alias="LOG_DIR")
    log_stdout: bool = Field(default=True, alias="SWAPPOINTS_LOG_STDOUT")
    log_max_bytes: int = Field(default=10 * 1024 * 1024, alias="LOG_MAX_BYTES")  # 10MB
    log_backup_count: int = Field(default=5, alias="LOG_BACKUP_COUNT")

    @property
    def admin_enabled(self) -> bool:
        """Admin endpoints are refused outright until a token is configured."""
        return bool(self.admin_token.strip())

    @field_validator("default_rate_usdt", "default_rate_ton")
    @classmethod
    def validate_rate(cls, v: Decimal) -> Decimal:
        """Rates must be positive and within the supported range."""
        if parse_rate(v) is None:
            raise ValueError("Default rates must be positive, up to 100000, with at most 4 decimal places")
        return v

    @field_validator("payment_address")
    @classmethod
    def validate_payment_address(cls, v: str) -> str:
        """Validate payment address format."""
        if not validate_payment_address(v):
            raise ValueError("Invalid PAYMENT_ADDRESS format")
        return v

    def model_post_init(self, __context) -> None:
        """Post-initialization setup."""
        # Ensure data directory exists
        self.store_file.parent.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()


# ============================================================================
# Deployment Instructions
# ============================================================================
#
# 1. Run the service in the background:
#    ADMIN_TOKEN=... nohup python -m swappoints.app > swappoints.log 2>&1 &
#
# 2. Monitor logs in real-time:
#    tail -f swappoints.log
#
# 3. Check store durability:
#    curl http://localhost:3000/api/health
#
# 4. Stop the service:
#    pkill -f "swappoints.app"
#
# ============================================================================
