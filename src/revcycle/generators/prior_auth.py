"""Prior authorization requests and their link to claims."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from revcycle.core.errors import MalformedInputError, RevenueCycleError
from revcycle.core.models import ClaimHeader, PatientIdentity, PriorAuth
from revcycle.core.types import AuthStatus, AuthType
from revcycle.generators.base import RecordGenerator, sequence_key
from revcycle.generators.patients import PatientRosterBuilder


if TYPE_CHECKING:
    import random
    from collections.abc import Sequence
    from datetime import date

    from revcycle.config.catalogs import ReferenceCatalog

logger = logging.getLogger(__name__)

OUTCOME_WEIGHTS = {
    AuthStatus.APPROVED: 0.70,
    AuthStatus.DENIED: 0.15,
    AuthStatus.PENDING: 0.15,
}
AUTH_TYPE_WEIGHTS = {
    AuthType.INITIAL: 0.80,
    AuthType.EXTENSION: 0.10,
    AuthType.MODIFICATION: 0.10,
}
MAX_REQUEST_AGE_DAYS = 90
MAX_DECISION_DAYS = 5
MAX_AUTH_VALIDITY_DAYS = 90
MAX_APPEAL_WINDOW_DAYS = 60
MAX_UNITS_REQUESTED = 10
LINK_SHARE = 0.3

CLINICAL_NOTES = (
    "Conservative treatment failed after six weeks",
    "Symptoms persisting despite medication",
    "Imaging indicates progression",
    "Specialist referral recommends procedure",
)
MEDICAL_NECESSITY = (
    "Procedure required to restore function",
    "Diagnostic confirmation needed before treatment",
    "Risk of complication without intervention",
)


class PriorAuthWorkflow(RecordGenerator):
    """Generates authorization requests with approved/denied/pending outcomes.

    Records are independent of claims. A record that fails validation is
    dropped and counted in ``rejected`` instead of aborting the batch.
    """

    def __init__(self, rng: random.Random, catalog: ReferenceCatalog, as_of: date) -> None:
        super().__init__(rng, catalog)
        self.as_of = as_of
        self.rejected = 0
        self._auth_numbers: set[str] = set()

    def generate(
        self, org_key: str, count: int, roster: Sequence[PatientIdentity] | None = None
    ) -> list[PriorAuth]:
        if count <= 0:
            raise MalformedInputError(f"Prior auth count must be positive, got {count}")
        if not roster:
            roster = PatientRosterBuilder(self.rng, self.catalog).build(org_key, count)

        auths: list[PriorAuth] = []
        for sequence in range(1, count + 1):
            patient = self._pick(roster)
            try:
                auths.append(self.build(org_key, sequence, patient))
            except RevenueCycleError as e:
                self.rejected += 1
                logger.warning("Dropped prior auth %d for %s: %s", sequence, org_key, e)
        logger.info("Generated %d prior auths for %s (%d dropped)", len(auths), org_key, self.rejected)
        return auths

    def draw_outcome(self) -> AuthStatus:
        outcomes = list(OUTCOME_WEIGHTS)
        return self.rng.choices(outcomes, weights=[OUTCOME_WEIGHTS[o] for o in outcomes])[0]

    def build(
        self,
        org_key: str,
        sequence: int,
        patient: PatientIdentity,
        status: AuthStatus | None = None,
    ) -> PriorAuth:
        status = status or self.draw_outcome()
        procedure = self._pick(self.catalog.auth_procedure_codes)
        diagnosis = self._pick(self.catalog.diagnosis_codes)
        request_date = self.as_of - timedelta(days=self.rng.randint(0, MAX_REQUEST_AGE_DAYS))
        units_requested = self.rng.randint(1, MAX_UNITS_REQUESTED)
        auth_types = list(AUTH_TYPE_WEIGHTS)

        decision: dict[str, object] = {}
        if status == AuthStatus.APPROVED:
            approval = request_date + timedelta(days=self.rng.randint(0, MAX_DECISION_DAYS))
            decision = {
                "auth_number": self._unique_auth_number(),
                "units_approved": self.rng.randint(1, units_requested),
                "approval_date": approval,
                "effective_date": approval,
                "expiration_date": approval
                + timedelta(days=self.rng.randint(1, MAX_AUTH_VALIDITY_DAYS)),
            }
        elif status == AuthStatus.DENIED:
            decision = {
                "denial_reason": self._pick(self.catalog.auth_denial_reasons),
                "appeal_deadline": self.as_of
                + timedelta(days=self.rng.randint(1, MAX_APPEAL_WINDOW_DAYS)),
            }
        if status != AuthStatus.PENDING:
            decision["reviewer_name"] = self._provider_name()
            decision["review_date"] = decision.get("approval_date") or request_date + timedelta(
                days=self.rng.randint(0, MAX_DECISION_DAYS)
            )

        return PriorAuth(
            auth_key=sequence_key("AUTH", org_key, sequence),
            org_key=org_key,
            reference_number=self._digits("REF", 8),
            payer_key=self._pick(self.catalog.payer_keys),
            patient_name=patient.name,
            patient_id=patient.patient_id,
            patient_dob=patient.dob,
            procedure_code=procedure.code,
            procedure_description=procedure.description,
            diagnosis_code=diagnosis.code,
            diagnosis_description=diagnosis.description,
            auth_status=status,
            auth_type=self.rng.choices(
                auth_types, weights=[AUTH_TYPE_WEIGHTS[t] for t in auth_types]
            )[0],
            units_requested=units_requested,
            request_date=request_date,
            requesting_provider_npi=self._npi(),
            requesting_provider_name=self._provider_name(),
            clinical_notes=self._pick(CLINICAL_NOTES),
            medical_necessity=self._pick(MEDICAL_NECESSITY),
            **decision,
        )

    def link_claims(
        self, headers: Sequence[ClaimHeader], auths: Sequence[PriorAuth]
    ) -> list[ClaimHeader]:
        """Attach approved authorization numbers to a share of the claims.

        A claim prefers an unused authorization for the same patient; each
        authorization is attached at most once. Only approved numbers are ever
        used, so no claim references a missing authorization.
        """
        unused = [a for a in auths if a.auth_status == AuthStatus.APPROVED]
        linked: list[ClaimHeader] = []
        for header in headers:
            if not unused or not self._chance(LINK_SHARE):
                linked.append(header)
                continue
            auth = next((a for a in unused if a.patient_id == header.patient_id), None)
            if auth is None:
                auth = self._pick(unused)
            unused.remove(auth)
            linked.append(header.model_copy(update={"prior_auth_number": auth.auth_number}))
        logger.debug(
            "Linked %d claims to prior auths",
            sum(1 for h in linked if h.prior_auth_number is not None),
        )
        return linked

    def _unique_auth_number(self) -> str:
        while True:
            number = self._digits("AUTH", 6)
            if number not in self._auth_numbers:
                self._auth_numbers.add(number)
                return number
