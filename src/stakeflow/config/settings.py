"""Application settings using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from stakeflow.constants.staking import SETTLEMENT_DELAY_SECONDS
from stakeflow.models.pool import ReceiptType


class Settings(BaseSettings):
    """StakeFlow configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Application
    app_name: str = Field(default="StakeFlow", description="Application name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Minimum log level"
    )

    # Solana RPC
    solana_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com",
        description="Solana RPC endpoint URL",
    )
    rpc_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for a single RPC request"
    )

    # Stake pool
    stake_pool_id: str = Field(
        default="", description="Stake pool name or base58 address"
    )
    default_receipt_type: ReceiptType = Field(
        default=ReceiptType.ORIGINAL,
        description="Receipt kind used when pool metadata does not pin one",
    )

    # Refresh after submission
    settlement_delay_seconds: float = Field(
        default=SETTLEMENT_DELAY_SECONDS,
        gt=0,
        description="Seconds to wait before re-fetching views after a batch",
    )

    # Submission
    confirmation_max_attempts: int = Field(
        default=30, ge=1, description="Signature status polls before giving up"
    )

    # Circuit Breaker
    circuit_breaker_threshold: int = Field(
        default=5, ge=1, description="Failures before circuit opens"
    )
    circuit_breaker_cooldown: int = Field(
        default=30, ge=1, description="Seconds before half-open"
    )

    @field_validator("solana_rpc_url")
    @classmethod
    def validate_solana_rpc_url(cls, v: str) -> str:
        """Validate RPC URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Solana RPC URL must start with http:// or https://")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
