"""Tests for claim header generation and header invariants."""

from __future__ import annotations

from collections import Counter
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from revcycle.core.errors import InvariantViolationError, MalformedInputError
from revcycle.core.models import ClaimHeader
from revcycle.core.types import ClaimStatusCode, ClaimType, PaymentScenario
from revcycle.generators.headers import settle_amounts


if TYPE_CHECKING:
    from collections.abc import Callable

    from revcycle.core.models import PatientIdentity
    from revcycle.generators.headers import ClaimHeaderFactory

CHARGE = Decimal("1000.00")


class TestSettleAmounts:
    def test_paid_adjusts_off_the_rest(self) -> None:
        assert settle_amounts(CHARGE, PaymentScenario.PAID, 0.85) == (
            Decimal("850.00"),
            Decimal("150.00"),
        )

    @pytest.mark.parametrize("scenario", [PaymentScenario.DENIED, PaymentScenario.PENDING])
    def test_unpaid_scenarios_settle_nothing(self, scenario: PaymentScenario) -> None:
        assert settle_amounts(CHARGE, scenario) == (Decimal("0.00"), Decimal("0.00"))

    def test_partial_payment_stays_below_charge(self) -> None:
        paid, adjustment = settle_amounts(CHARGE, PaymentScenario.PARTIALLY_PAID, 0.5, 0.2)
        assert (paid, adjustment) == (Decimal("500.00"), Decimal("200.00"))

    def test_partial_payment_clamps_adjustment(self) -> None:
        paid, adjustment = settle_amounts(CHARGE, PaymentScenario.PARTIALLY_PAID, 0.7, 0.3)
        assert paid == Decimal("700.00")
        assert adjustment == Decimal("299.99")
        assert paid + adjustment < CHARGE

    def test_rejects_non_positive_charge(self) -> None:
        with pytest.raises(MalformedInputError):
            settle_amounts(Decimal("0.00"), PaymentScenario.PAID, 0.8)

    def test_paid_requires_ratio(self) -> None:
        with pytest.raises(MalformedInputError):
            settle_amounts(CHARGE, PaymentScenario.PAID)


class TestClaimHeaderFactory:
    def test_paid_header_from_explicit_draws(self, make_header: Callable[..., ClaimHeader]) -> None:
        header = make_header(scenario=PaymentScenario.PAID, charge=CHARGE, paid_ratio=0.85)
        assert header.total_paid_amount == Decimal("850.00")
        assert header.total_adjustment_amount == Decimal("150.00")
        assert header.current_status == ClaimStatusCode.PAID

    def test_denied_header_carries_no_payment(
        self, make_header: Callable[..., ClaimHeader]
    ) -> None:
        header = make_header(scenario=PaymentScenario.DENIED, charge=CHARGE)
        assert header.total_paid_amount == Decimal("0.00")
        assert header.current_status == ClaimStatusCode.DENIED

    def test_partially_paid_header_is_processed(
        self, make_header: Callable[..., ClaimHeader]
    ) -> None:
        header = make_header(scenario=PaymentScenario.PARTIALLY_PAID)
        assert header.current_status == ClaimStatusCode.PROCESSED
        assert 0 < header.total_paid_amount
        assert header.total_paid_amount + header.total_adjustment_amount < header.total_charge_amount

    def test_generate_population(
        self, header_factory: ClaimHeaderFactory, roster: list[PatientIdentity]
    ) -> None:
        headers = header_factory.generate("ORG1", 200, roster)
        assert [h.claim_key for h in headers[:2]] == ["CLM-ORG1-000001", "CLM-ORG1-000002"]
        assert len({h.claim_key for h in headers}) == 200
        statuses = Counter(h.current_status for h in headers)
        assert set(statuses) <= {
            ClaimStatusCode.PAID,
            ClaimStatusCode.PROCESSED,
            ClaimStatusCode.DENIED,
            ClaimStatusCode.PENDING,
        }
        assert statuses[ClaimStatusCode.PAID] > statuses[ClaimStatusCode.PENDING]
        for h in headers:
            assert h.total_paid_amount + h.total_adjustment_amount <= h.total_charge_amount
            assert Decimal("500.00") <= h.total_charge_amount <= Decimal("15000.00")
            assert h.service_date_to >= h.service_date_from
            assert h.original_submission_date.date() >= h.service_date_to
            if h.claim_type == ClaimType.PROFESSIONAL:
                assert h.admission_date is None and h.bill_type is None
            if h.admission_date is not None:
                assert h.discharge_date >= h.admission_date

    def test_generate_rejects_bad_input(
        self, header_factory: ClaimHeaderFactory, roster: list[PatientIdentity]
    ) -> None:
        with pytest.raises(MalformedInputError):
            header_factory.generate("ORG1", 0, roster)
        with pytest.raises(MalformedInputError):
            header_factory.generate("ORG1", 5, [])


class TestHeaderInvariants:
    def test_zero_charge_is_malformed(self, make_header: Callable[..., ClaimHeader]) -> None:
        data = make_header(scenario=PaymentScenario.DENIED).model_dump()
        data["total_charge_amount"] = Decimal("0.00")
        with pytest.raises(MalformedInputError):
            ClaimHeader.model_validate(data)

    def test_fully_settled_claim_must_be_paid(
        self, make_header: Callable[..., ClaimHeader]
    ) -> None:
        data = make_header(scenario=PaymentScenario.PAID, charge=CHARGE, paid_ratio=0.85).model_dump()
        data["current_status"] = ClaimStatusCode.PROCESSED
        with pytest.raises(InvariantViolationError):
            ClaimHeader.model_validate(data)

    def test_overpayment_rejected(self, make_header: Callable[..., ClaimHeader]) -> None:
        data = make_header(scenario=PaymentScenario.PAID, charge=CHARGE, paid_ratio=0.85).model_dump()
        data["total_paid_amount"] = Decimal("900.00")
        with pytest.raises(InvariantViolationError):
            ClaimHeader.model_validate(data)

    def test_processed_claim_must_carry_payment(
        self, make_header: Callable[..., ClaimHeader]
    ) -> None:
        header = make_header(scenario=PaymentScenario.PENDING, charge=CHARGE)
        later = header.status_date + timedelta(days=1)
        resumed = header.with_status(ClaimStatusCode.PROCESSING, later)
        with pytest.raises(InvariantViolationError):
            resumed.with_status(ClaimStatusCode.PROCESSED, later + timedelta(days=1))
        with pytest.raises(InvariantViolationError):
            resumed.with_status(
                ClaimStatusCode.PAID, later + timedelta(days=1), Decimal("0.00"), CHARGE
            )

    def test_terminal_status_rederives_scenario(
        self, make_header: Callable[..., ClaimHeader]
    ) -> None:
        header = make_header(scenario=PaymentScenario.PENDING, charge=CHARGE)
        later = header.status_date + timedelta(days=1)
        resumed = header.with_status(ClaimStatusCode.PROCESSING, later)
        assert resumed.scenario == PaymentScenario.PENDING
        denied = resumed.with_status(ClaimStatusCode.DENIED, later + timedelta(days=1))
        assert denied.scenario == PaymentScenario.DENIED

    def test_professional_claim_cannot_have_admission(
        self, make_header: Callable[..., ClaimHeader]
    ) -> None:
        data = make_header(scenario=PaymentScenario.DENIED).model_dump()
        data.update(
            claim_type=ClaimType.PROFESSIONAL,
            admission_date=data["service_date_from"],
            discharge_date=data["service_date_from"],
            bill_type=None,
        )
        with pytest.raises(InvariantViolationError):
            ClaimHeader.model_validate(data)

    def test_with_status_revalidates_and_bumps_version(
        self, make_header: Callable[..., ClaimHeader]
    ) -> None:
        header = make_header(scenario=PaymentScenario.PENDING, charge=CHARGE)
        later = header.status_date + timedelta(days=2)
        resumed = header.with_status(ClaimStatusCode.PROCESSING, later)
        assert resumed.version == header.version + 1
        assert resumed.status_date == later
        with pytest.raises(InvariantViolationError):
            resumed.with_status(ClaimStatusCode.PAID, later, Decimal("100.00"), Decimal("0.00"))

    def test_headers_are_frozen(self, make_header: Callable[..., ClaimHeader]) -> None:
        header = make_header(scenario=PaymentScenario.PENDING)
        with pytest.raises(ValidationError):
            header.current_status = ClaimStatusCode.PAID  # type: ignore[misc]
