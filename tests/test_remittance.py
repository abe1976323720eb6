"""Tests for remittance reconciliation."""

from __future__ import annotations

import random
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from revcycle.core.errors import InvariantViolationError
from revcycle.core.models import Remittance
from revcycle.core.types import PaymentMethod, PaymentScenario
from revcycle.generators.remittance import RemittanceReconciler


if TYPE_CHECKING:
    from collections.abc import Callable

    from revcycle.config.catalogs import ReferenceCatalog
    from revcycle.core.models import ClaimHeader


@pytest.fixture
def reconciler(catalog: ReferenceCatalog) -> RemittanceReconciler:
    return RemittanceReconciler(random.Random(5), catalog)


class TestReconcileHeader:
    def test_paid_claim_buckets(
        self, reconciler: RemittanceReconciler, make_header: Callable[..., ClaimHeader]
    ) -> None:
        header = make_header(
            scenario=PaymentScenario.PAID, charge=Decimal("1000.00"), paid_ratio=0.85
        )
        remittance = reconciler.reconcile_header(header, 1)
        assert remittance.remittance_key == "RMT-ORG1-00000001"
        assert remittance.payment_amount == Decimal("850.00")
        assert remittance.adjustment_amount == Decimal("150.00")
        assert remittance.contractual_amount == Decimal("105.00")
        assert remittance.deductible_amount == Decimal("22.50")
        assert remittance.coinsurance_amount == Decimal("15.00")
        assert remittance.copay_amount == Decimal("7.50")
        assert remittance.bucket_total == remittance.adjustment_amount
        assert remittance.patient_responsibility == Decimal("0.00")
        assert remittance.adjustment_reason_code is not None

    def test_partial_payment_leaves_patient_responsibility(
        self, reconciler: RemittanceReconciler, make_header: Callable[..., ClaimHeader]
    ) -> None:
        header = make_header(scenario=PaymentScenario.PARTIALLY_PAID)
        remittance = reconciler.reconcile_header(header, 1)
        expected = (
            header.total_charge_amount - header.total_paid_amount - header.total_adjustment_amount
        )
        assert remittance.patient_responsibility == expected
        assert remittance.patient_responsibility > 0

    def test_dates_follow_status(
        self, reconciler: RemittanceReconciler, make_header: Callable[..., ClaimHeader]
    ) -> None:
        for _ in range(20):
            header = make_header(scenario=PaymentScenario.PAID)
            remittance = reconciler.reconcile_header(header, 1)
            lag = (remittance.payment_date - header.status_date.date()).days
            assert 0 <= lag <= 14
            assert 0 <= (remittance.posted_date - remittance.payment_date).days <= 3

    def test_payment_reference_matches_method(
        self, reconciler: RemittanceReconciler, make_header: Callable[..., ClaimHeader]
    ) -> None:
        for _ in range(30):
            remittance = reconciler.reconcile_header(make_header(scenario=PaymentScenario.PAID), 1)
            if remittance.payment_method == PaymentMethod.CHECK:
                assert remittance.check_number.startswith("CHK")
                assert remittance.eft_trace_number is None
                assert remittance.check_date == remittance.payment_date
            else:
                assert remittance.check_number is None
                assert remittance.eft_trace_number.startswith("EFT")

    def test_negative_patient_responsibility_rejected(
        self, reconciler: RemittanceReconciler, make_header: Callable[..., ClaimHeader]
    ) -> None:
        header = make_header(
            scenario=PaymentScenario.PAID, charge=Decimal("1000.00"), paid_ratio=0.85
        )
        overpaid = header.model_construct(
            **{**dict(header), "total_adjustment_amount": Decimal("200.00")}
        )
        with pytest.raises(InvariantViolationError):
            reconciler.reconcile_header(overpaid, 1)


class TestReconcile:
    def test_only_paid_claims_get_remittance(
        self, reconciler: RemittanceReconciler, make_header: Callable[..., ClaimHeader]
    ) -> None:
        headers = [
            make_header(scenario=PaymentScenario.PAID),
            make_header(scenario=PaymentScenario.DENIED),
            make_header(scenario=PaymentScenario.PENDING),
            make_header(scenario=PaymentScenario.PARTIALLY_PAID),
        ]
        remittances = reconciler.reconcile(headers)
        assert [r.claim_key for r in remittances] == [headers[0].claim_key, headers[3].claim_key]
        assert [r.remittance_key for r in remittances] == ["RMT-ORG1-00000001", "RMT-ORG1-00000002"]

    def test_denied_claim_has_no_remittance(
        self, reconciler: RemittanceReconciler, make_header: Callable[..., ClaimHeader]
    ) -> None:
        header = make_header(scenario=PaymentScenario.DENIED, charge=Decimal("1000.00"))
        assert header.total_paid_amount == Decimal("0.00")
        assert reconciler.reconcile([header]) == []


class TestRemittanceInvariants:
    def _remittance(self, **overrides: object) -> dict[str, object]:
        data: dict[str, object] = {
            "remittance_key": "RMT-ORG1-00000001",
            "claim_key": "CLM-ORG1-000001",
            "org_key": "ORG1",
            "remittance_advice_number": "RA0000000001",
            "eft_trace_number": "EFT000000000001",
            "payment_method": "EFT",
            "payment_amount": "850.00",
            "payment_date": "2024-04-01",
            "adjustment_amount": "150.00",
            "contractual_amount": "105.00",
            "deductible_amount": "22.50",
            "coinsurance_amount": "15.00",
            "copay_amount": "7.50",
            "processing_date": "2024-04-01",
            "posted_date": "2024-04-02",
            "posted_by": "Billing Staff",
            "claim_control_number": "CCN000000000001",
        }
        data.update(overrides)
        return data

    def test_valid(self) -> None:
        assert Remittance.model_validate(self._remittance()).bucket_total == Decimal("150.00")

    def test_buckets_must_match_adjustment(self) -> None:
        with pytest.raises(InvariantViolationError):
            Remittance.model_validate(self._remittance(copay_amount="9.50"))

    def test_both_check_and_eft(self) -> None:
        with pytest.raises(InvariantViolationError):
            Remittance.model_validate(self._remittance(check_number="CHK00000001"))

    def test_posted_before_payment(self) -> None:
        with pytest.raises(InvariantViolationError):
            Remittance.model_validate(self._remittance(posted_date="2024-03-30"))
