"""Tests for eligibility verification snapshots."""

from __future__ import annotations

import random
from collections import Counter
from typing import TYPE_CHECKING

import pytest

from revcycle.core.errors import InvariantViolationError, MalformedInputError
from revcycle.core.models import Eligibility
from revcycle.core.types import CoverageStatus, NetworkStatus
from revcycle.generators.eligibility import EligibilityVerifier


if TYPE_CHECKING:
    from datetime import date

    from revcycle.config.catalogs import ReferenceCatalog
    from revcycle.core.models import PatientIdentity


@pytest.fixture
def verifier(catalog: ReferenceCatalog, as_of: date) -> EligibilityVerifier:
    return EligibilityVerifier(random.Random(13), catalog, as_of)


class TestGenerate:
    def test_mostly_active_coverage(
        self, verifier: EligibilityVerifier, roster: list[PatientIdentity], as_of: date
    ) -> None:
        records = verifier.generate("ORG1", 200, roster)
        assert len(records) == 200
        assert records[0].eligibility_key == "ELIG-ORG1-000001"
        statuses = Counter(r.verification_status for r in records)
        assert statuses[CoverageStatus.ACTIVE] > 150
        for record in records:
            assert record.verification_date <= as_of

    def test_active_accumulators(
        self, verifier: EligibilityVerifier, roster: list[PatientIdentity]
    ) -> None:
        for sequence in range(1, 30):
            record = verifier.build("ORG1", sequence, roster[0], CoverageStatus.ACTIVE)
            assert record.effective_date <= record.verification_date
            assert record.termination_date is None
            assert record.deductible_met <= record.deductible_amount
            assert record.deductible_met <= 1500
            assert record.out_of_pocket_met <= record.out_of_pocket_max
            assert 15 <= record.copay_amount <= 50
            assert record.network_status != NetworkStatus.UNKNOWN

    @pytest.mark.parametrize("status", [CoverageStatus.INACTIVE, CoverageStatus.TERMINATED])
    def test_lapsed_coverage(
        self,
        verifier: EligibilityVerifier,
        roster: list[PatientIdentity],
        status: CoverageStatus,
    ) -> None:
        record = verifier.build("ORG1", 1, roster[0], status)
        assert record.effective_date is None
        assert record.termination_date < record.verification_date
        assert record.copay_amount is None
        assert record.deductible_amount is None
        assert record.network_status == NetworkStatus.UNKNOWN

    def test_rejects_non_positive_count(self, verifier: EligibilityVerifier) -> None:
        with pytest.raises(MalformedInputError):
            verifier.generate("ORG1", -1)


class TestEligibilityInvariants:
    def test_both_dates_rejected(
        self, verifier: EligibilityVerifier, roster: list[PatientIdentity]
    ) -> None:
        data = verifier.build("ORG1", 1, roster[0], CoverageStatus.ACTIVE).model_dump()
        data["termination_date"] = data["verification_date"]
        with pytest.raises(InvariantViolationError):
            Eligibility.model_validate(data)

    def test_deductible_met_over_total(
        self, verifier: EligibilityVerifier, roster: list[PatientIdentity]
    ) -> None:
        data = verifier.build("ORG1", 1, roster[0], CoverageStatus.ACTIVE).model_dump()
        data["deductible_met"] = data["deductible_amount"] + 1
        with pytest.raises(InvariantViolationError):
            Eligibility.model_validate(data)

    def test_lapsed_coverage_with_accumulators(
        self, verifier: EligibilityVerifier, roster: list[PatientIdentity]
    ) -> None:
        data = verifier.build("ORG1", 1, roster[0], CoverageStatus.TERMINATED).model_dump()
        data["copay_amount"] = 25
        with pytest.raises(InvariantViolationError):
            Eligibility.model_validate(data)
