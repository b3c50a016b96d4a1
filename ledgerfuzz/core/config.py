"""Core configuration for the ledgerfuzz harness."""

from __future__ import annotations

import enum
from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ActorRole(str, enum.Enum):
    """Classes of test identities known to the harness."""

    COLDKEY = "coldkey"
    HOTKEY = "hotkey"
    SPECTATOR = "spectator"
    SUBNET_OWNER = "subnet_owner"


class ActorSpec(BaseModel):
    """A configured test identity.

    ``address`` may be left empty and derived from ``seed`` once at
    startup by the caller (see ``ActorRegistry.with_addresses``).
    """

    name: str
    role: ActorRole
    seed: str = ""
    address: str = ""


def _default_actors() -> list[ActorSpec]:
    return [
        ActorSpec(name="hotkey1", role=ActorRole.HOTKEY, seed="//Charlie"),
        ActorSpec(name="coldkey1", role=ActorRole.COLDKEY, seed="//Alice"),
        ActorSpec(name="hotkey2", role=ActorRole.HOTKEY, seed="//Dave"),
        ActorSpec(name="coldkey2", role=ActorRole.COLDKEY, seed="//Bob"),
        ActorSpec(name="coldkey3", role=ActorRole.COLDKEY, seed="//Eve"),
        ActorSpec(name="spectator", role=ActorRole.SPECTATOR),
    ]


class Settings(BaseSettings):
    """Harness settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LEDGERFUZZ_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # ── Storage scanning ─────────────────────────────────────────────────
    scan_page_size: int = 1000
    max_partition_concurrency: int = 8

    # ── Invariant tolerances ─────────────────────────────────────────────
    share_tolerance_divisor: int = 1000
    liquidity_rel_tolerance: Decimal = Decimal("0.001")

    # ── Contract campaign ────────────────────────────────────────────────
    contract_weights: dict[str, float] = Field(
        default_factory=lambda: {"Transfer": 0.2, "Stake": 0.4, "Unstake": 0.4}
    )
    contract_iterations: int = 100
    check_invariants_first: bool = True
    unstake_balance_tolerance_divisor: int = 2
    seed: int | None = None
    journal_path: str = "test_journal.txt"
    actors: list[ActorSpec] = Field(default_factory=_default_actors)

    @field_validator("scan_page_size", "max_partition_concurrency", "share_tolerance_divisor",
                     "unstake_balance_tolerance_divisor")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("contract_weights")
    @classmethod
    def _non_negative_weights(cls, value: dict[str, float]) -> dict[str, float]:
        for name, weight in value.items():
            if weight < 0:
                raise ValueError(f"weight for {name} must not be negative")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
