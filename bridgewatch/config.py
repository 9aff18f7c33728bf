from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Normalise base URLs so path joins never produce a double slash."""

        super().model_post_init(__context)

        for name in ("bridge_api_base_url", "gas_api_base_url", "coingecko_base_url"):
            value = getattr(self, name)
            if value and value.endswith("/"):
                object.__setattr__(self, name, value.rstrip("/"))

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Upstream APIs
    bridge_api_base_url: str = Field(
        default="https://bridge.api.cx.metamask.io",
        description="Bridge API used for transaction status queries",
        validation_alias=AliasChoices("bridge_api_base_url", "bridge_api_url"),
    )
    gas_api_base_url: str = Field(
        default="https://gas.api.cx.metamask.io",
        description="Gas API used for suggested fee-per-gas estimates",
    )
    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="Coingecko API base URL",
    )
    coingecko_api_key: str = Field(default="", description="Coingecko API key")

    # Provider Toggles
    enable_coingecko: bool = Field(default=True, description="Enable Coingecko exchange-rate lookups")
    enable_gas_api: bool = Field(default=True, description="Enable gas fee estimate lookups")

    # Cache Settings
    cache_ttl_seconds: int = Field(default=60, description="Exchange-rate cache TTL in seconds")
    max_cache_size: int = Field(default=1000, description="Maximum cache size")

    # Rate Limiting
    request_timeout_seconds: int = Field(default=15, description="Upstream request timeout")

    # Quote ranking policy
    display_currency: str = Field(default="usd", description="Fiat currency used for quote valuation")
    bridge_quote_max_eta_seconds: int = Field(
        default=3600,
        ge=1,
        description="Best-priced quotes slower than this are not recommended when sorting by return",
    )
    bridge_quote_min_return_ratio: float = Field(
        default=0.8,
        gt=0,
        le=1,
        description="Fastest quotes must return at least this share of the best adjusted return",
    )
    bridge_recommend_unpriced_quotes: bool = Field(
        default=True,
        description="Treat quotes without a fiat adjusted return as acceptable when sorting by ETA",
    )
    bridge_preferred_gas_estimate: str = Field(
        default="medium",
        pattern="^(low|medium|high)$",
        description="Gas API estimate level used for the priority fee",
    )

    # Status tracking
    bridge_status_poll_interval_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Interval between status polls for in-flight bridge transactions",
    )
    bridge_status_request_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Max seconds a single status poll may take before it is abandoned",
    )
    bridge_tracking_enabled: bool = Field(
        default=True,
        description="Start the status polling scheduler alongside FastAPI",
    )

    @property
    def has_coingecko_key(self) -> bool:
        return bool(self.coingecko_api_key)


# Global settings instance
settings = Settings()
