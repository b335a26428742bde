import re

from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
from typing import Optional, Literal


class SenseiSettings(BaseSettings):
    """Sensei service configuration.

    Document store backends:
      oracle: Oracle Database (freepdb local container or adb on OCI)
      memory: in-process dict store, for development and tests

    The cache policy values (TTL, message cap, prune target, token ratio)
    are product-tuned defaults and can be overridden per deployment.
    """

    store_backend: Literal["oracle", "memory"] = "oracle"

    oracle_mode: Literal["freepdb", "adb"] = "freepdb"
    oracle_user: str = "sensei"
    oracle_password: str = ""
    oracle_host: str = "localhost"
    oracle_port: int = 1521
    oracle_service: str = "FREEPDB1"
    oracle_dsn: Optional[str] = None
    oracle_wallet_path: Optional[str] = None
    oracle_wallet_password: Optional[str] = None
    oracle_pool_min: int = 2
    oracle_pool_max: int = 10

    cache_collection: str = "conversation_cache"
    agent_collection: str = "agents"
    cache_ttl_minutes: int = 30
    cache_max_messages: int = 25
    cache_prune_to: int = 20
    token_ratio: float = 1.5
    history_limit: int = 10
    display_timezone: str = "Asia/Tokyo"

    cleanup_interval_seconds: float = 15 * 60
    cleanup_initial_delay_seconds: float = 5
    auto_cleanup: bool = True

    gemini_api_keys: str = ""
    gemini_model: str = "gemini-1.5-flash"
    gemini_max_daily_requests: int = 1500

    sensei_service_port: int = 8100
    sensei_service_token: Optional[str] = None
    auto_init: bool = False

    model_config = {"env_prefix": "", "case_sensitive": False}

    @field_validator("cache_collection", "agent_collection")
    @classmethod
    def validate_collection(cls, v: str) -> str:
        if not re.match(r"^[A-Za-z0-9_\-]+$", v):
            raise ValueError(f"Invalid collection name: {v!r} (alphanumeric, '-' and '_' only)")
        return v

    @field_validator("gemini_model")
    @classmethod
    def validate_gemini_model(cls, v: str) -> str:
        if not re.match(r"^[A-Za-z0-9_.\-]+$", v):
            raise ValueError(f"Invalid Gemini model name: {v!r}")
        return v

    @field_validator("token_ratio")
    @classmethod
    def validate_token_ratio(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("token_ratio must be positive")
        return v

    @model_validator(mode="after")
    def validate_cache_limits(self):
        if self.cache_prune_to > self.cache_max_messages:
            raise ValueError("cache_prune_to must not exceed cache_max_messages")
        if self.cache_prune_to < 0:
            raise ValueError("cache_prune_to must be >= 0")
        return self

    @property
    def uses_oracle(self) -> bool:
        return self.store_backend == "oracle"

    @property
    def is_adb(self) -> bool:
        return self.oracle_mode == "adb"

    @property
    def uses_wallet(self) -> bool:
        """True if ADB mode with a wallet path (mTLS)."""
        return self.is_adb and bool(self.oracle_wallet_path)

    @property
    def uses_tls(self) -> bool:
        """True if ADB mode with a long DSN descriptor (wallet-less TLS)."""
        return self.is_adb and bool(self.oracle_dsn) and not self.uses_wallet

    @property
    def api_keys(self) -> list[str]:
        """Gemini keys in priority order."""
        return [k.strip() for k in self.gemini_api_keys.split(",") if k.strip()]

    def get_dsn(self) -> str:
        """Return the DSN for oracledb connection.

        ADB mode: full DSN descriptor.
        FreePDB mode: simple host:port/service format.
        """
        if self.is_adb and self.oracle_dsn:
            return self.oracle_dsn
        return f"{self.oracle_host}:{self.oracle_port}/{self.oracle_service}"
