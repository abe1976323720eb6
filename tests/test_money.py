"""Tests for cent rounding and proportional allocation."""

from __future__ import annotations

from decimal import Decimal

import pytest

from revcycle.core.errors import MalformedInputError
from revcycle.core.money import allocate, to_money, within_tolerance


class TestToMoney:
    def test_rounds_half_up(self) -> None:
        assert to_money(Decimal("10.005")) == Decimal("10.01")
        assert to_money(Decimal("10.004")) == Decimal("10.00")

    def test_float_goes_through_str(self) -> None:
        assert to_money(0.1 + 0.2) == Decimal("0.30")
        assert to_money(1.005) == Decimal("1.01")

    def test_int_and_str(self) -> None:
        assert to_money(5) == Decimal("5.00")
        assert to_money("12.3") == Decimal("12.30")


class TestAllocate:
    def test_residual_goes_to_first_largest_weight(self) -> None:
        assert allocate(Decimal("100.00"), [1, 1, 1]) == [
            Decimal("33.34"),
            Decimal("33.33"),
            Decimal("33.33"),
        ]

    def test_residual_goes_to_largest_weight(self) -> None:
        shares = allocate(Decimal("100.00"), [1, 2, 1])
        assert shares == [Decimal("25.00"), Decimal("50.00"), Decimal("25.00")]
        shares = allocate(Decimal("0.10"), [1, 1, 1.5])
        assert sum(shares) == Decimal("0.10")
        assert shares[2] == max(shares)

    def test_remittance_split(self) -> None:
        assert allocate(Decimal("10.00"), [70, 15, 10, 5]) == [
            Decimal("7.00"),
            Decimal("1.50"),
            Decimal("1.00"),
            Decimal("0.50"),
        ]

    def test_sum_is_exact_for_awkward_totals(self) -> None:
        weights = [0.73, 1.41, 0.52, 1.18, 0.96]
        for cents in (1, 7, 99, 12345, 999999):
            total = Decimal(cents) / 100
            assert sum(allocate(total, weights)) == total

    def test_zero_total(self) -> None:
        assert allocate(Decimal("0.00"), [1, 3]) == [Decimal("0.00"), Decimal("0.00")]

    @pytest.mark.parametrize("weights", [[], [1, -1], [0, 0]])
    def test_rejects_unusable_weights(self, weights: list[int]) -> None:
        with pytest.raises(MalformedInputError):
            allocate(Decimal("1.00"), weights)


def test_within_tolerance() -> None:
    assert within_tolerance(Decimal("1.00"), Decimal("1.01"))
    assert not within_tolerance(Decimal("1.00"), Decimal("1.02"))
