"""Base class for record generators."""

from __future__ import annotations

import string
from abc import ABC
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, TypeVar

from revcycle.core.money import to_money


if TYPE_CHECKING:
    import random
    from collections.abc import Sequence

    from revcycle.config.catalogs import ReferenceCatalog

T = TypeVar("T")


class RecordGenerator(ABC):
    """Base class for all generators.

    Generators never touch the global ``random`` module: each one draws from
    the ``random.Random`` it was given, so an assembly seeded once is fully
    reproducible and generators for different organizations can run side by
    side.
    """

    def __init__(self, rng: random.Random, catalog: ReferenceCatalog) -> None:
        """Initialize the generator.

        Args:
            rng: Seeded random source owned by this generator.
            catalog: Read-only reference code tables.
        """
        self.rng = rng
        self.catalog = catalog

    def _pick(self, options: Sequence[T]) -> T:
        return self.rng.choice(options)

    def _chance(self, probability: float) -> bool:
        return self.rng.random() < probability

    def _digits(self, prefix: str, length: int) -> str:
        return prefix + "".join(self.rng.choices(string.digits, k=length))

    def _npi(self) -> str:
        """Generate a realistic NPI (10 digits starting with 1 or 2)."""
        return self._pick("12") + "".join(self.rng.choices(string.digits, k=9))

    def _staff(self) -> str:
        return f"staff_{self.rng.randint(1, 10)}"

    def _provider_name(self) -> str:
        return f"Dr. {self._pick(self.catalog.provider_surnames)}"

    def _date_between(self, start: date, end: date) -> date:
        return start + timedelta(days=self.rng.randint(0, max((end - start).days, 0)))

    def _business_time(self, day: date) -> datetime:
        """A timestamp on ``day`` between 08:00 and 17:59."""
        return datetime.combine(
            day, time(hour=self.rng.randint(8, 17), minute=self.rng.randint(0, 59))
        )

    def _money_between(self, low: Decimal | float, high: Decimal | float) -> Decimal:
        low_cents = int(to_money(low) * 100)
        high_cents = int(to_money(high) * 100)
        return to_money(Decimal(self.rng.randint(low_cents, high_cents)) / 100)


def sequence_key(prefix: str, org_key: str, sequence: int, width: int = 6) -> str:
    """Build a synthetic unique key such as ``CLM-ORG1-000001``."""
    return f"{prefix}-{org_key}-{sequence:0{width}d}"
