"""Eligibility verification snapshots."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from revcycle.core.errors import MalformedInputError, RevenueCycleError
from revcycle.core.models import Eligibility, PatientIdentity
from revcycle.core.money import to_money
from revcycle.core.types import CoverageStatus, NetworkStatus, VerificationMethod
from revcycle.generators.base import RecordGenerator, sequence_key
from revcycle.generators.patients import PatientRosterBuilder


if TYPE_CHECKING:
    import random
    from collections.abc import Sequence
    from datetime import date

    from revcycle.config.catalogs import ReferenceCatalog

logger = logging.getLogger(__name__)

ACTIVE_SHARE = 0.9
IN_NETWORK_SHARE = 0.8
MAX_VERIFICATION_AGE_DAYS = 30
MAX_COVERAGE_AGE_DAYS = 365

COPAY_RANGE = (15, 50)
DEDUCTIBLE_RANGE = (500, 3000)
DEDUCTIBLE_MET_CAP = 1500
OUT_OF_POCKET_RANGE = (3000, 8000)
OUT_OF_POCKET_MET_CAP = 2000


class EligibilityVerifier(RecordGenerator):
    """Generates coverage snapshots, active with probability 0.9.

    Active coverage reports benefit accumulators and a network status;
    inactive or terminated coverage carries a termination date only.
    """

    def __init__(self, rng: random.Random, catalog: ReferenceCatalog, as_of: date) -> None:
        super().__init__(rng, catalog)
        self.as_of = as_of
        self.rejected = 0

    def generate(
        self, org_key: str, count: int, roster: Sequence[PatientIdentity] | None = None
    ) -> list[Eligibility]:
        if count <= 0:
            raise MalformedInputError(f"Eligibility count must be positive, got {count}")
        if not roster:
            roster = PatientRosterBuilder(self.rng, self.catalog).build(org_key, count)

        records: list[Eligibility] = []
        for sequence in range(1, count + 1):
            patient = self._pick(roster)
            try:
                records.append(self.build(org_key, sequence, patient))
            except RevenueCycleError as e:
                self.rejected += 1
                logger.warning("Dropped eligibility %d for %s: %s", sequence, org_key, e)
        logger.info(
            "Generated %d eligibility records for %s (%d dropped)", len(records), org_key, self.rejected
        )
        return records

    def build(
        self,
        org_key: str,
        sequence: int,
        patient: PatientIdentity,
        status: CoverageStatus | None = None,
    ) -> Eligibility:
        if status is None:
            status = (
                CoverageStatus.ACTIVE
                if self._chance(ACTIVE_SHARE)
                else self._pick((CoverageStatus.INACTIVE, CoverageStatus.TERMINATED))
            )
        verified_on = self.as_of - timedelta(days=self.rng.randint(0, MAX_VERIFICATION_AGE_DAYS))

        coverage: dict[str, object]
        if status == CoverageStatus.ACTIVE:
            deductible = to_money(self.rng.randint(*DEDUCTIBLE_RANGE))
            out_of_pocket = to_money(self.rng.randint(*OUT_OF_POCKET_RANGE))
            coverage = {
                "effective_date": verified_on
                - timedelta(days=self.rng.randint(0, MAX_COVERAGE_AGE_DAYS)),
                "copay_amount": to_money(self.rng.randint(*COPAY_RANGE)),
                "deductible_amount": deductible,
                "deductible_met": self._money_between(0, min(DEDUCTIBLE_MET_CAP, deductible)),
                "out_of_pocket_max": out_of_pocket,
                "out_of_pocket_met": self._money_between(
                    0, min(OUT_OF_POCKET_MET_CAP, out_of_pocket)
                ),
                "network_status": (
                    NetworkStatus.IN_NETWORK
                    if self._chance(IN_NETWORK_SHARE)
                    else NetworkStatus.OUT_OF_NETWORK
                ),
                "prior_auth_required": self._chance(0.3),
                "referral_required": self._chance(0.2),
                "verification_notes": "Coverage active, benefits verified",
            }
        else:
            coverage = {
                "termination_date": verified_on
                - timedelta(days=self.rng.randint(1, MAX_COVERAGE_AGE_DAYS)),
                "verification_notes": f"Coverage {status.value}",
            }

        secondary = self._chance(0.2)
        return Eligibility(
            eligibility_key=sequence_key("ELIG", org_key, sequence),
            org_key=org_key,
            patient_id=patient.patient_id,
            patient_name=patient.name,
            patient_dob=patient.dob,
            payer_key=self._pick(self.catalog.payer_keys),
            member_id=self._digits("MEM", 9),
            group_number=self._digits("GRP", 6),
            plan_name=self._pick(self.catalog.plan_names),
            policy_number=self._digits("POL", 8),
            verification_date=verified_on,
            verification_method=self._pick(list(VerificationMethod)),
            verification_status=status,
            secondary_insurance=secondary,
            coordination_of_benefits="primary" if not secondary else self._pick(("primary", "secondary")),
            verified_by=self._staff(),
            **coverage,
        )
