"""Application settings and configuration."""

from __future__ import annotations

import os
from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from revcycle.core.errors import MalformedInputError
from revcycle.core.types import PaymentScenario


class GenerationSettings(BaseModel):
    """Dataset size, reproducibility and value ranges."""

    claim_count: int = 20
    prior_auth_count: int = 15
    eligibility_count: int = 25
    seed: int | None = None
    service_window_start: date = date(2024, 1, 1)
    service_window_end: date = date(2024, 12, 31)
    as_of: date | None = None
    min_charge: Decimal = Decimal("500.00")
    max_charge: Decimal = Decimal("15000.00")

    @field_validator("claim_count", "prior_auth_count", "eligibility_count")
    @classmethod
    def _positive_count(cls, value: int) -> int:
        if value <= 0:
            raise MalformedInputError(f"Generation counts must be positive, got {value}")
        return value

    @model_validator(mode="after")
    def _check_ranges(self) -> GenerationSettings:
        if self.min_charge <= 0 or self.max_charge < self.min_charge:
            raise MalformedInputError(
                f"Invalid charge range {self.min_charge}..{self.max_charge}"
            )
        if self.service_window_end < self.service_window_start:
            raise MalformedInputError("Service window ends before it starts")
        return self

    def reference_date(self) -> date:
        """Date treated as 'today' for deadlines and days-in-status."""
        return self.as_of or date.today()


class ScenarioWeights(BaseModel):
    """Probability of each payment outcome for a generated claim."""

    paid: float = 0.40
    partially_paid: float = 0.30
    denied: float = 0.20
    pending: float = 0.10

    @model_validator(mode="after")
    def _sum_to_one(self) -> ScenarioWeights:
        values = [self.paid, self.partially_paid, self.denied, self.pending]
        if any(v < 0 for v in values):
            raise MalformedInputError(f"Scenario weights must be non-negative: {values}")
        if abs(sum(values) - 1.0) > 1e-9:
            raise MalformedInputError(f"Scenario weights must sum to 1, got {sum(values):.4f}")
        return self

    def as_mapping(self) -> dict[PaymentScenario, float]:
        return {
            PaymentScenario.PAID: self.paid,
            PaymentScenario.PARTIALLY_PAID: self.partially_paid,
            PaymentScenario.DENIED: self.denied,
            PaymentScenario.PENDING: self.pending,
        }


class StorageSettings(BaseModel):
    """Claims repository configuration."""

    db_path: str = "revcycle.db"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # Generation
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    scenarios: ScenarioWeights = Field(default_factory=ScenarioWeights)

    # Storage
    storage: StorageSettings = Field(default_factory=StorageSettings)

    # Optional JSON code-table file replacing the built-in catalog
    catalog_path: str | None = None

    # Logging
    log_level: str = "INFO"

    def __init__(self, **data: Any) -> None:
        """Initialize settings with environment variable overrides."""
        super().__init__(**data)
        self._load_env_overrides()

    def _load_env_overrides(self) -> None:
        """Load environment variable overrides for nested settings."""
        if seed := os.getenv("REVCYCLE_SEED"):
            self.generation.seed = int(seed)
        if count := os.getenv("REVCYCLE_CLAIM_COUNT"):
            self.generation = GenerationSettings(
                **{**self.generation.model_dump(), "claim_count": int(count)}
            )
        if as_of := os.getenv("REVCYCLE_AS_OF"):
            self.generation.as_of = date.fromisoformat(as_of)
        if db_path := os.getenv("REVCYCLE_DB_PATH"):
            self.storage.db_path = db_path
        if catalog := os.getenv("REVCYCLE_CATALOG_PATH"):
            self.catalog_path = catalog
        if level := os.getenv("REVCYCLE_LOG_LEVEL"):
            self.log_level = level.upper()
