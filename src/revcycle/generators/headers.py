"""Claim header generation: one header per patient encounter."""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from revcycle.core.errors import MalformedInputError
from revcycle.core.models import ClaimHeader, PatientIdentity
from revcycle.core.money import CENT, ZERO, to_money
from revcycle.core.types import ClaimStatusCode, ClaimType, PaymentScenario
from revcycle.generators.base import RecordGenerator, sequence_key


if TYPE_CHECKING:
    import random
    from collections.abc import Sequence

    from revcycle.config.catalogs import ReferenceCatalog
    from revcycle.config.settings import GenerationSettings, ScenarioWeights

logger = logging.getLogger(__name__)

# Share of charge paid / adjusted per payment scenario
PAID_RATIO = (0.70, 0.95)
PARTIAL_PAID_RATIO = (0.30, 0.70)
PARTIAL_ADJUSTMENT_RATIO = (0.10, 0.30)

INSTITUTIONAL_SHARE = 0.6
INPATIENT_SHARE = 0.3
MAX_LENGTH_OF_STAY_DAYS = 7
MAX_SUBMISSION_LAG_DAYS = 30
ELIGIBILITY_VERIFIED_SHARE = 0.8
REPLACEMENT_CLAIM_SHARE = 0.1

PROFESSIONAL_PLACES_OF_SERVICE = ("11", "22", "23")
OUTPATIENT_BILL_TYPES = ("121", "131", "141")

PROCESSING_NOTES = {
    ClaimStatusCode.PAID: "Claim processed successfully",
    ClaimStatusCode.PROCESSED: "Claim processed with partial payment",
    ClaimStatusCode.DENIED: "Claim denied - see line item details",
    ClaimStatusCode.PENDING: "Claim under review",
}


def settle_amounts(
    charge: Decimal,
    scenario: PaymentScenario,
    paid_ratio: float | None = None,
    adjustment_ratio: float | None = None,
) -> tuple[Decimal, Decimal]:
    """Compute (paid, adjustment) for a claim charge under a payment scenario.

    A fully paid claim adjusts off everything it did not pay. A partially paid
    claim keeps paid + adjustment strictly below the charge so the remainder
    stays open as patient responsibility. Denied and pending claims settle
    nothing.

    Args:
        charge: Total claim charge, positive.
        scenario: Payment outcome.
        paid_ratio: Share of the charge paid (paid and partially paid only).
        adjustment_ratio: Share of the charge adjusted (partially paid only).

    Returns:
        Paid and adjustment amounts, quantized to cents.
    """
    charge = to_money(charge)
    if charge <= 0:
        raise MalformedInputError(f"Claim charge must be positive, got {charge}")
    if scenario in (PaymentScenario.DENIED, PaymentScenario.PENDING):
        return ZERO, ZERO
    if paid_ratio is None or not 0 < paid_ratio < 1:
        raise MalformedInputError(f"Paid ratio must be in (0, 1), got {paid_ratio}")

    paid = to_money(charge * Decimal(str(paid_ratio)))
    if scenario == PaymentScenario.PAID:
        return paid, charge - paid

    if adjustment_ratio is None or not 0 <= adjustment_ratio < 1:
        raise MalformedInputError(f"Adjustment ratio must be in [0, 1), got {adjustment_ratio}")
    adjustment = to_money(charge * Decimal(str(adjustment_ratio)))
    if paid + adjustment >= charge:
        adjustment = max(charge - paid - CENT, ZERO)
    if paid <= 0 or paid >= charge:
        raise MalformedInputError(f"Partial payment {paid} is not strictly inside charge {charge}")
    return paid, adjustment


class ClaimHeaderFactory(RecordGenerator):
    """Produces claim headers with a weighted payment-outcome scenario."""

    def __init__(
        self,
        rng: random.Random,
        catalog: ReferenceCatalog,
        settings: GenerationSettings,
        weights: ScenarioWeights,
    ) -> None:
        super().__init__(rng, catalog)
        self.settings = settings
        self._scenarios = weights.as_mapping()

    def generate(
        self, org_key: str, count: int, roster: Sequence[PatientIdentity]
    ) -> list[ClaimHeader]:
        if count <= 0:
            raise MalformedInputError(f"Claim count must be positive, got {count}")
        if not roster:
            raise MalformedInputError("Cannot generate claims without patients")
        headers = [self.build(org_key, seq, self._pick(roster)) for seq in range(1, count + 1)]
        logger.info("Generated %d claim headers for %s", len(headers), org_key)
        return headers

    def draw_scenario(self) -> PaymentScenario:
        scenarios = list(self._scenarios)
        return self.rng.choices(scenarios, weights=[self._scenarios[s] for s in scenarios])[0]

    def draw_ratios(self, scenario: PaymentScenario) -> tuple[float | None, float | None]:
        if scenario == PaymentScenario.PAID:
            return self.rng.uniform(*PAID_RATIO), None
        if scenario == PaymentScenario.PARTIALLY_PAID:
            return self.rng.uniform(*PARTIAL_PAID_RATIO), self.rng.uniform(*PARTIAL_ADJUSTMENT_RATIO)
        return None, None

    def build(
        self,
        org_key: str,
        sequence: int,
        patient: PatientIdentity,
        scenario: PaymentScenario | None = None,
        charge: Decimal | None = None,
        paid_ratio: float | None = None,
    ) -> ClaimHeader:
        """Build one header; explicit arguments override the random draws."""
        settings = self.settings
        service_from = self._date_between(settings.service_window_start, settings.service_window_end)

        claim_type = (
            ClaimType.INSTITUTIONAL if self._chance(INSTITUTIONAL_SHARE) else ClaimType.PROFESSIONAL
        )
        admission = discharge = bill_type = None
        service_to = service_from
        if claim_type == ClaimType.INSTITUTIONAL:
            if self._chance(INPATIENT_SHARE):
                admission = service_from
                discharge = service_from + timedelta(
                    days=self.rng.randint(0, MAX_LENGTH_OF_STAY_DAYS)
                )
                service_to = discharge
                place_of_service, bill_type = "21", "111"
            else:
                place_of_service = self._pick(("22", "23"))
                bill_type = self._pick(OUTPATIENT_BILL_TYPES)
        else:
            place_of_service = self._pick(PROFESSIONAL_PLACES_OF_SERVICE)

        submitted_at = self._business_time(
            service_to + timedelta(days=self.rng.randint(0, MAX_SUBMISSION_LAG_DAYS))
        )

        if charge is None:
            charge = self._money_between(settings.min_charge, settings.max_charge)
        if scenario is None:
            scenario = self.draw_scenario()
        drawn_paid_ratio, adjustment_ratio = self.draw_ratios(scenario)
        paid, adjustment = settle_amounts(
            charge,
            scenario,
            paid_ratio if paid_ratio is not None else drawn_paid_ratio,
            adjustment_ratio,
        )
        status = scenario.terminal_status

        verified = self._chance(ELIGIBILITY_VERIFIED_SHARE)
        claim_key = sequence_key("CLM", org_key, sequence)
        header = ClaimHeader(
            org_key=org_key,
            claim_key=claim_key,
            claim_number=self._digits("CN", 10),
            patient_account_number=patient.account_number,
            payer_key=self._pick(self.catalog.payer_keys),
            patient_name=patient.name,
            patient_dob=patient.dob,
            patient_gender=patient.gender,
            patient_id=patient.patient_id,
            department=self._pick(self.catalog.departments),
            service_date_from=service_from,
            service_date_to=service_to,
            admission_date=admission,
            discharge_date=discharge,
            total_charge_amount=charge,
            total_paid_amount=paid,
            total_adjustment_amount=adjustment,
            claim_type=claim_type,
            bill_type=bill_type,
            claim_frequency="7" if self._chance(REPLACEMENT_CLAIM_SHARE) else "1",
            scenario=scenario,
            rendering_provider_npi=self._npi(),
            rendering_provider_name=self._provider_name(),
            billing_provider_npi=self._npi(),
            billing_provider_name=f"{org_key} Medical Center",
            facility_name=f"{org_key} Hospital",
            facility_npi=self._npi(),
            place_of_service=place_of_service,
            original_submission_date=submitted_at,
            current_submission_date=submitted_at,
            clearinghouse=self._pick(self.catalog.clearinghouses),
            current_status=status,
            status_date=submitted_at,
            processing_note=PROCESSING_NOTES[status],
            eligibility_verified=verified,
            eligibility_verified_date=(
                submitted_at - timedelta(days=self.rng.randint(0, 7)) if verified else None
            ),
        )
        logger.debug("Built %s (%s, %s)", claim_key, scenario.value, charge)
        return header
