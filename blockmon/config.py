"""Application configuration management."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any, List, Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _split_csv(value: Any) -> List[str]:
    if value in (None, "", []):
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [str(value)]


class Settings(BaseSettings):
    """Runtime configuration loaded from environment or `.env`."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    telegram_bot_token: str = Field(..., alias="TELEGRAM_BOT_TOKEN")
    # @username or a numeric -100... id
    telegram_channel_id: str = Field(..., alias="TELEGRAM_CHANNEL_ID")
    telegram_timeout_seconds: float = Field(
        default=10.0,
        alias="TELEGRAM_TIMEOUT_SECONDS",
        gt=0,
        le=120,
    )

    moralis_api_key: str = Field(..., alias="MORALIS_API_KEY")
    moralis_stream_id: str = Field(..., alias="MORALIS_STREAM_ID")
    moralis_streams_secret: Optional[str] = Field(
        default=None,
        alias="MORALIS_STREAMS_SECRET",
    )
    moralis_api_url: str = Field(
        default="https://api.moralis-streams.com",
        alias="MORALIS_API_URL",
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./.tmp/state.db",
        alias="DATABASE_URL",
    )

    webhook_host: str = Field(default="0.0.0.0", alias="WEBHOOK_HOST")
    webhook_port: int = Field(default=3000, alias="WEBHOOK_PORT", ge=1, le=65535)
    webhook_path: str = Field(default="/webhook", alias="WEBHOOK_PATH")

    admin_user_ids: Annotated[List[int], NoDecode] = Field(
        default_factory=list,
        alias="ADMIN_USER_IDS",
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    pending_ttl_minutes: int = Field(
        default=60,
        alias="PENDING_TTL_MINUTES",
        ge=1,
        le=7 * 24 * 60,
    )
    pending_max_entries: int = Field(
        default=5000,
        alias="PENDING_MAX_ENTRIES",
        ge=1,
    )
    pending_purge_interval_minutes: int = Field(
        default=5,
        alias="PENDING_PURGE_INTERVAL_MINUTES",
        ge=1,
        le=60,
    )

    solana_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com",
        alias="SOLANA_RPC_URL",
    )
    solana_wss_url: str = Field(
        default="wss://api.mainnet-beta.solana.com",
        alias="SOLANA_WSS_URL",
    )
    solana_watch_addresses: Annotated[List[str], NoDecode] = Field(
        default_factory=list,
        alias="SOLANA_WATCH_ADDRESSES",
    )

    @field_validator("admin_user_ids", mode="before")
    @classmethod
    def _parse_admin_ids(cls, value: Any) -> List[int]:
        return [int(part) for part in _split_csv(value)]

    @field_validator("solana_watch_addresses", mode="before")
    @classmethod
    def _parse_solana_addresses(cls, value: Any) -> List[str]:
        return _split_csv(value)

    @field_validator("webhook_path")
    @classmethod
    def _normalize_webhook_path(cls, value: str) -> str:
        value = value.strip() or "/webhook"
        return value if value.startswith("/") else f"/{value}"

    @model_validator(mode="after")
    def _default_streams_secret(self) -> "Settings":
        # Moralis signs stream webhooks with the account API key unless a
        # dedicated streams secret is configured.
        if not self.moralis_streams_secret:
            self.moralis_streams_secret = self.moralis_api_key
        return self


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Return cached Settings instance, raising a helpful message on failure."""
    try:
        return Settings()
    except (
        ValidationError
    ) as exc:  # pragma: no cover - configuration failure visible on boot
        raise RuntimeError(f"Invalid configuration: {exc}") from exc


__all__ = ["Settings", "load_settings"]
