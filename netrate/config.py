"""
Configuration for the interface throughput collector.

We use pydantic-settings (Pydantic v2) to load settings from:
- environment variables
- a local `.env` file in the project root
"""

from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings.

    Environment variables (with defaults):

    - POLL_INTERVAL_SECONDS: How often to sample the interface table (default: 2)
    - COUNTER_BITS:          Width of the kernel byte counters (default: 32)
    - STALE_AFTER_SECONDS:   Sample gap after which rates are zeroed (default: 60)
    - RATE_EPSILON_SECONDS:  Added to elapsed time before dividing (default: 0.001)
    - DATABASE_URL:          SQLAlchemy URL, default SQLite file "netrate.db"
    - USE_IFLIST_STUB:       "1" or "0" to toggle the synthetic interface table
    - STUB_INTERFACES:       Comma-separated interface names for the stub
    - LOG_LEVEL:             Logging level name (default: INFO)
    """

    poll_interval_seconds: float = 2.0

    # the Darwin layout stores 4-byte counters
    counter_bits: int = Field(default=32, ge=8, le=32)
    stale_after_seconds: float = 60.0
    rate_epsilon_seconds: float = Field(default=0.001, gt=0)

    database_url: str = "sqlite:///./netrate.db"

    use_iflist_stub: bool = True

    # Populated from STUB_INTERFACES; parsed below.
    stub_interfaces: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["en0", "en1"])

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("stub_interfaces", mode="before")
    @classmethod
    def parse_stub_interfaces(cls, v):
        """
        Allow STUB_INTERFACES to be specified as:

        - "en0"          -> ["en0"]
        - "en0, en1"     -> ["en0", "en1"]
        - ["en0", "en1"] -> ["en0", "en1"]
        """
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()


# Single global settings object
settings = Settings()
