"""Settings module with unified configuration precedence: CLI > ENV > CONFIG FILE."""

from __future__ import annotations

import os
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from web3 import Web3

from .constants import (
    COSTON2_NETWORK,
    FLARE_NETWORK,
    PUBLIC_VERIFIER_API_KEY,
    WEI_PER_NATIVE,
    FdcNetwork,
)
from .domain import FeedConfig

load_dotenv()

SECRET_FIELDS = {"private_key", "verifier_api_key"}

# 10**77 is the largest power of ten below 2**256
MAX_TOKEN_DECIMALS = 77


class Network(str, Enum):
    FLARE = "flare"
    COSTON2 = "coston2"


NETWORK_DEFAULTS: dict[Network, FdcNetwork] = {
    Network.FLARE: FLARE_NETWORK,
    Network.COSTON2: COSTON2_NETWORK,
}


def _checksum(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ValueError(f"{field_name} is not a valid address: {value!r}")
    return Web3.to_checksum_address(value)


class FeedSettings(BaseModel):
    """One configured price feed: a pool and the feed contract it updates."""

    alias: str
    name: str | None = None
    pool_address: str
    feed_address: str
    token0_decimals: int = Field(ge=0, le=MAX_TOKEN_DECIMALS)
    token1_decimals: int = Field(ge=0, le=MAX_TOKEN_DECIMALS)
    invert_price: bool = False

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("alias")
    @classmethod
    def normalize_alias(cls, v: str) -> str:
        alias = v.strip().upper()
        if not alias:
            raise ValueError("feed alias must not be empty")
        return alias

    @field_validator("pool_address", "feed_address")
    @classmethod
    def validate_address(cls, v: str, info: Any) -> str:
        return _checksum(v, info.field_name)

    def to_config(self) -> FeedConfig:
        return FeedConfig(
            alias=self.alias,
            name=self.name or self.alias.replace("_", "/"),
            pool_address=self.pool_address,
            feed_address=self.feed_address,
            token0_decimals=self.token0_decimals,
            token1_decimals=self.token1_decimals,
            invert_price=self.invert_price,
        )


class FeedsSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with POOL_FEEDS_)
    - Config file (TOML), lowest precedence

    Do not read os.environ or files elsewhere in the codebase.
    """

    # --- network / endpoints ---
    network: Network = Network.FLARE
    rpc_url: str | None = None
    fdc_hub_address: str | None = None
    relay_address: str | None = None
    da_layer_url: str | None = None
    verifier_url: str | None = None

    # --- contracts ---
    price_recorder_address: str | None = None
    feeds: list[FeedSettings] = Field(default_factory=list)

    # --- signing ---
    private_key: SecretStr | None = None
    verifier_api_key: SecretStr = SecretStr(PUBLIC_VERIFIER_API_KEY)

    # --- scheduling ---
    check_interval_seconds: float = Field(default=60.0, ge=0)
    stats_interval_minutes: float = Field(default=60.0, gt=0)
    max_cycles: int | None = Field(default=None, gt=0)

    # --- gas & funding ---
    record_gas_limit: int = Field(default=150_000, gt=0)
    attestation_gas_limit: int = Field(default=500_000, gt=0)
    proof_gas_limit: int = Field(default=500_000, gt=0)
    max_gas_price_gwei: float = Field(default=100.0, gt=0)
    min_balance: float = Field(default=1.0, ge=0)
    critical_balance: float = Field(default=0.1, ge=0)
    balance_check_every_cycles: int = Field(default=10, gt=0)

    # --- retries / breaker ---
    attestation_retries: int = Field(default=2, ge=0)
    attestation_retry_delay_seconds: float = Field(default=10.0, ge=0)
    circuit_breaker_threshold: int = Field(default=10, gt=0)
    preflight_retries: int = Field(default=2, ge=0)
    preflight_retry_delay_seconds: float = Field(default=10.0, ge=0)

    # --- attestation timing ---
    tx_timeout_seconds: float = Field(default=300.0, gt=0)
    finalization_timeout_seconds: float = Field(default=300.0, gt=0)
    finalization_poll_seconds: float = Field(default=10.0, gt=0)
    da_settle_delay_seconds: float = Field(default=30.0, ge=0)
    http_timeout_seconds: float = Field(default=30.0, gt=0)
    fallback_fee_wei: int = Field(default=WEI_PER_NATIVE // 2, ge=0)
    required_confirmations: int = Field(default=1, ge=1)
    verify_proof_locally: bool = True

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="POOL_FEEDS_",
        env_file=".env",
        extra="ignore",  # ignore unknown keys in env/config file
    )

    @field_validator("private_key", "verifier_api_key", mode="before")
    @classmethod
    def wrap_secrets(cls, v: Any) -> SecretStr | None:
        """Wrap string secrets in SecretStr."""
        if v is None or isinstance(v, SecretStr):
            return v
        return SecretStr(v)

    @field_validator(
        "price_recorder_address", "fdc_hub_address", "relay_address", mode="after"
    )
    @classmethod
    def validate_optional_address(cls, v: str | None, info: Any) -> str | None:
        if v is None:
            return v
        return _checksum(v, info.field_name)

    @model_validator(mode="after")
    def validate_balance_thresholds(self) -> "FeedsSettings":
        """Critical balance must sit strictly below the warning threshold."""
        if self.critical_balance >= self.min_balance:
            raise ValueError(
                f"critical_balance ({self.critical_balance}) must be less than "
                f"min_balance ({self.min_balance})"
            )
        return self

    @model_validator(mode="after")
    def validate_unique_feeds(self) -> "FeedsSettings":
        """Each alias and each pool may appear only once."""
        aliases = [feed.alias for feed in self.feeds]
        pools = [feed.pool_address for feed in self.feeds]
        duplicate_aliases = sorted({a for a in aliases if aliases.count(a) > 1})
        duplicate_pools = sorted({p for p in pools if pools.count(p) > 1})
        if duplicate_aliases:
            raise ValueError(f"duplicate feed aliases: {', '.join(duplicate_aliases)}")
        if duplicate_pools:
            raise ValueError(f"duplicate feed pools: {', '.join(duplicate_pools)}")
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Custom config-file source with explicit precedence: CLI > ENV > FILE."""
        env_cfg = os.environ.get("POOL_FEEDS_CONFIG")
        cfg_path = Path(env_cfg) if env_cfg else None

        class TomlConfigSource(PydanticBaseSettingsSource):
            def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
                super().__init__(settings_cls)
                self._path = path

            def get_field_value(
                self, field: Any, field_name: str
            ) -> tuple[Any, str, bool]:
                return None, "", False

            def __call__(self) -> dict[str, Any]:
                if not self._path:
                    local_config = Path("pool-feeds.toml")
                    user_config = Path.home() / ".config" / "pool-feeds" / "config.toml"
                    if local_config.exists():
                        self._path = local_config
                    elif user_config.exists():
                        self._path = user_config
                    else:
                        return {}

                if not self._path.exists():
                    return {}

                with self._path.open("rb") as f:
                    data = tomllib.load(f)  # supports top-level or [pool_feeds]
                body = data.get("pool_feeds", data)
                if not isinstance(body, dict):
                    return {}

                for key in SECRET_FIELDS:
                    if key in body:
                        raise ValueError(
                            f"Security violation: '{key}' found in TOML config file. "
                            f"Secrets must only be provided via environment variables or CLI flags."
                        )

                return body

        return (
            init_settings,  # CLI (highest)
            env_settings,  # ENV
            dotenv_settings,
            TomlConfigSource(settings_cls, cfg_path),  # CONFIG (lowest)
            file_secret_settings,
        )

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the config as a dict with secrets redacted."""
        data = self.model_dump(mode="json")
        if self.private_key:
            data["private_key"] = "***redacted***"
        data["verifier_api_key"] = "***redacted***"
        return data

    @property
    def network_defaults(self) -> FdcNetwork:
        return NETWORK_DEFAULTS[self.network]

    @property
    def chain_id(self) -> int:
        return self.network_defaults["chain_id"]

    @property
    def native_symbol(self) -> str:
        return self.network_defaults["native_symbol"]

    @property
    def rpc_url_resolved(self) -> str:
        return self.rpc_url or self.network_defaults["rpc_url"]

    @property
    def fdc_hub_resolved(self) -> str:
        return self.fdc_hub_address or self.network_defaults["fdc_hub"]

    @property
    def relay_resolved(self) -> str:
        return self.relay_address or self.network_defaults["relay"]

    @property
    def da_layer_url_resolved(self) -> str:
        return (self.da_layer_url or self.network_defaults["da_layer_url"]).rstrip("/")

    @property
    def verifier_url_resolved(self) -> str:
        return self.verifier_url or self.network_defaults["verifier_url"]

    @property
    def source_id(self) -> str:
        return self.network_defaults["source_id"]

    @property
    def price_recorder_required(self) -> str:
        """Get price_recorder_address, raising ValueError if not set."""
        if self.price_recorder_address is None:
            raise ValueError("price_recorder_address must be configured")
        return self.price_recorder_address

    @property
    def private_key_required(self) -> str:
        """Get the signing key, raising ValueError if not set."""
        if self.private_key is None:
            raise ValueError("private_key must be configured")
        return self.private_key.get_secret_value()

    @property
    def max_gas_price_wei(self) -> int:
        return int(self.max_gas_price_gwei * 10**9)

    @property
    def min_balance_wei(self) -> int:
        return int(self.min_balance * WEI_PER_NATIVE)

    @property
    def critical_balance_wei(self) -> int:
        return int(self.critical_balance * WEI_PER_NATIVE)

    def feed_configs(self) -> list[FeedConfig]:
        """Immutable per-feed configuration, in declaration order."""
        return [feed.to_config() for feed in self.feeds]
