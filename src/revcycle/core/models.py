"""Record models for the claims revenue-cycle dataset.

Every record is a frozen pydantic model whose validators enforce the record's
own invariants at construction. Cross-record rules (referential integrity)
live on ``ClaimsDataset``; financial reconciliation across collections lives in
``revcycle.validation.reconciliation``.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, Field, model_validator

from revcycle.core.errors import (
    InvariantViolationError,
    MalformedInputError,
    ReferentialIntegrityError,
)
from revcycle.core.money import ZERO, to_money, within_tolerance
from revcycle.core.types import (  # noqa: TC001 - Pydantic needs at runtime
    REMITTED_STATUSES,
    AuthStatus,
    AuthType,
    ClaimStatusCode,
    ClaimType,
    CoverageStatus,
    LineStatus,
    NetworkStatus,
    PaymentMethod,
    PaymentScenario,
    PriorityLevel,
    ResponseType,
    VerificationMethod,
)


Money = Annotated[Decimal, AfterValidator(to_money)]


class PatientIdentity(BaseModel):
    """A patient drawn from the organization's roster."""

    patient_id: str
    name: str
    dob: date
    gender: str = Field(pattern="^[MFU]$")
    account_number: str

    model_config = {"frozen": True}


class ClaimHeader(BaseModel):
    """One claim per patient encounter."""

    org_key: str
    claim_key: str
    claim_number: str
    patient_account_number: str
    payer_key: str

    patient_name: str
    patient_dob: date
    patient_gender: str
    patient_id: str
    department: str

    service_date_from: date
    service_date_to: date
    admission_date: date | None = None
    discharge_date: date | None = None

    total_charge_amount: Money
    total_paid_amount: Money = ZERO
    total_adjustment_amount: Money = ZERO

    claim_type: ClaimType
    bill_type: str | None = None
    claim_frequency: str = "1"
    # Generation-time draw until a live event settles the claim; then follows current_status.
    scenario: PaymentScenario

    rendering_provider_npi: str
    rendering_provider_name: str
    billing_provider_npi: str
    billing_provider_name: str
    facility_name: str
    facility_npi: str
    place_of_service: str

    original_submission_date: datetime
    current_submission_date: datetime
    clearinghouse: str

    current_status: ClaimStatusCode
    status_date: datetime
    processing_note: str | None = None

    prior_auth_number: str | None = None
    eligibility_verified: bool = False
    eligibility_verified_date: datetime | None = None

    version: int = 0

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_financials(self) -> ClaimHeader:
        charge, paid, adjustment = (
            self.total_charge_amount,
            self.total_paid_amount,
            self.total_adjustment_amount,
        )
        if charge <= 0:
            raise MalformedInputError(f"{self.claim_key}: total charge must be positive, got {charge}")
        if paid < 0 or adjustment < 0:
            raise InvariantViolationError(f"{self.claim_key}: negative paid or adjustment amount")
        settled = paid + adjustment
        if settled > charge:
            raise InvariantViolationError(
                f"{self.claim_key}: paid {paid} + adjustment {adjustment} exceeds charge {charge}"
            )
        fully_settled = settled == charge
        if fully_settled != (self.current_status == ClaimStatusCode.PAID):
            raise InvariantViolationError(
                f"{self.claim_key}: paid + adjustment may equal charge only when status is paid "
                f"(status={self.current_status.value}, settled={settled}, charge={charge})"
            )
        if self.current_status in (ClaimStatusCode.DENIED, ClaimStatusCode.PENDING) and paid:
            raise InvariantViolationError(
                f"{self.claim_key}: {self.current_status.value} claim carries payment {paid}"
            )
        if self.current_status in REMITTED_STATUSES and paid <= 0:
            raise InvariantViolationError(
                f"{self.claim_key}: {self.current_status.value} claim must carry a payment"
            )
        return self

    @model_validator(mode="after")
    def _check_dates(self) -> ClaimHeader:
        if self.service_date_to < self.service_date_from:
            raise InvariantViolationError(f"{self.claim_key}: service end precedes service start")
        if self.original_submission_date.date() < self.service_date_from:
            raise InvariantViolationError(f"{self.claim_key}: submitted before service date")
        if self.claim_type == ClaimType.PROFESSIONAL and (
            self.admission_date or self.discharge_date or self.bill_type
        ):
            raise InvariantViolationError(
                f"{self.claim_key}: admission, discharge and bill type are institutional only"
            )
        if self.discharge_date and (
            self.admission_date is None or self.discharge_date < self.admission_date
        ):
            raise InvariantViolationError(f"{self.claim_key}: discharge without a prior admission")
        if self.eligibility_verified != (self.eligibility_verified_date is not None):
            raise InvariantViolationError(
                f"{self.claim_key}: eligibility verified date must accompany the verified flag"
            )
        return self

    def with_status(
        self,
        status: ClaimStatusCode,
        at: datetime,
        paid_amount: Decimal | None = None,
        adjustment_amount: Decimal | None = None,
    ) -> ClaimHeader:
        """Return a re-validated copy with a new status and a bumped version.

        A terminal status also re-derives ``scenario`` so the header reports the
        outcome the claim actually reached.
        """
        data = self.model_dump()
        data.update(current_status=status, status_date=at, version=self.version + 1)
        if status.scenario is not None:
            data["scenario"] = status.scenario
        if paid_amount is not None:
            data["total_paid_amount"] = paid_amount
        if adjustment_amount is not None:
            data["total_adjustment_amount"] = adjustment_amount
        return ClaimHeader.model_validate(data)


class ClaimLine(BaseModel):
    """A service line belonging to a claim header."""

    line_key: str
    claim_key: str
    org_key: str
    line_number: int = Field(ge=1)

    revenue_code: str | None = None
    procedure_code: str
    procedure_description: str
    modifiers: tuple[str, ...] = Field(default=(), max_length=4)

    service_date: date
    units: int = Field(ge=1)
    unit_type: str = "UN"

    charge_amount: Money
    allowed_amount: Money
    paid_amount: Money = ZERO
    adjustment_amount: Money = ZERO

    line_status: LineStatus
    denial_reason_code: str | None = None
    denial_reason_description: str | None = None
    remark_code: str | None = None

    rendering_provider_npi: str
    diagnosis_pointers: tuple[int, ...] = Field(default=(1,), min_length=1, max_length=4)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_amounts(self) -> ClaimLine:
        amounts = (self.charge_amount, self.allowed_amount, self.paid_amount, self.adjustment_amount)
        if any(a < 0 for a in amounts):
            raise InvariantViolationError(f"{self.line_key}: negative line amount")
        if self.paid_amount + self.adjustment_amount > self.charge_amount:
            raise InvariantViolationError(
                f"{self.line_key}: paid + adjustment exceeds line charge {self.charge_amount}"
            )
        denied = self.line_status == LineStatus.DENIED
        if denied != (self.denial_reason_code is not None):
            raise InvariantViolationError(
                f"{self.line_key}: denial code must be present exactly when the line is denied"
            )
        if denied and self.paid_amount:
            raise InvariantViolationError(f"{self.line_key}: denied line carries payment")
        if any(p < 1 or p > 4 for p in self.diagnosis_pointers):
            raise InvariantViolationError(f"{self.line_key}: diagnosis pointers must be 1-4")
        return self


class ClaimStatusRecord(BaseModel):
    """One entry of a claim's status history."""

    status_key: str
    claim_key: str
    org_key: str
    sequence: int = Field(ge=1)

    status_code: ClaimStatusCode
    status_description: str
    status_date: datetime
    effective_date: datetime

    clearinghouse_status: str | None = None
    payer_status: str | None = None
    processing_note: str | None = None

    response_received: bool = False
    response_date: datetime | None = None
    response_type: ResponseType | None = None

    assigned_to: str
    priority_level: PriorityLevel = PriorityLevel.NORMAL

    follow_up_required: bool = False
    follow_up_date: datetime | None = None
    days_in_status: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_tracking(self) -> ClaimStatusRecord:
        if self.follow_up_required != (self.follow_up_date is not None):
            raise InvariantViolationError(
                f"{self.status_key}: follow-up date must accompany the follow-up flag"
            )
        if self.follow_up_date and self.follow_up_date <= self.status_date:
            raise InvariantViolationError(f"{self.status_key}: follow-up not after status date")
        if self.response_received != (self.response_date is not None):
            raise InvariantViolationError(
                f"{self.status_key}: response date must accompany the response flag"
            )
        return self


class Remittance(BaseModel):
    """Payment and adjustment decomposition for a paid claim."""

    remittance_key: str
    claim_key: str
    org_key: str

    remittance_advice_number: str
    check_number: str | None = None
    eft_trace_number: str | None = None
    check_date: date | None = None

    payment_method: PaymentMethod
    payment_amount: Money
    payment_date: date

    adjustment_reason_code: str | None = None
    adjustment_description: str | None = None
    adjustment_amount: Money = ZERO

    contractual_amount: Money = ZERO
    deductible_amount: Money = ZERO
    coinsurance_amount: Money = ZERO
    copay_amount: Money = ZERO

    processing_date: date
    posted_date: date
    posted_by: str

    claim_control_number: str
    patient_responsibility: Money = ZERO

    remittance_source: str = "electronic"
    verification_status: str = "verified"

    model_config = {"frozen": True}

    @property
    def bucket_total(self) -> Decimal:
        return (
            self.contractual_amount
            + self.deductible_amount
            + self.coinsurance_amount
            + self.copay_amount
        )

    @model_validator(mode="after")
    def _check_reconciliation(self) -> Remittance:
        if self.payment_amount <= 0:
            raise InvariantViolationError(f"{self.remittance_key}: payment must be positive")
        if not within_tolerance(self.bucket_total, self.adjustment_amount):
            raise InvariantViolationError(
                f"{self.remittance_key}: adjustment buckets sum to {self.bucket_total}, "
                f"expected {self.adjustment_amount}"
            )
        if self.patient_responsibility < 0:
            raise InvariantViolationError(
                f"{self.remittance_key}: negative patient responsibility {self.patient_responsibility}"
            )
        if (self.check_number is None) == (self.eft_trace_number is None):
            raise InvariantViolationError(
                f"{self.remittance_key}: exactly one of check number or EFT trace is required"
            )
        if self.posted_date < self.payment_date:
            raise InvariantViolationError(f"{self.remittance_key}: posted before payment")
        return self


class PriorAuth(BaseModel):
    """A prior authorization request and its decision."""

    auth_key: str
    org_key: str
    auth_number: str | None = None
    reference_number: str
    payer_key: str

    patient_name: str
    patient_id: str
    patient_dob: date

    procedure_code: str
    procedure_description: str
    diagnosis_code: str
    diagnosis_description: str

    auth_status: AuthStatus
    auth_type: AuthType = AuthType.INITIAL
    units_requested: int = Field(ge=1)
    units_approved: int | None = None

    request_date: date
    approval_date: date | None = None
    effective_date: date | None = None
    expiration_date: date | None = None

    requesting_provider_npi: str
    requesting_provider_name: str

    clinical_notes: str
    medical_necessity: str

    reviewer_name: str | None = None
    review_date: date | None = None
    denial_reason: str | None = None
    appeal_deadline: date | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_decision(self) -> PriorAuth:
        approved = self.auth_status == AuthStatus.APPROVED
        denied = self.auth_status == AuthStatus.DENIED
        window = (self.approval_date, self.expiration_date)
        if approved != all(d is not None for d in window) or (
            not approved and any(d is not None for d in window)
        ):
            raise InvariantViolationError(
                f"{self.auth_key}: approval and expiration dates are required exactly when approved"
            )
        if approved != (self.auth_number is not None and self.units_approved is not None):
            raise InvariantViolationError(
                f"{self.auth_key}: auth number and approved units belong to approved requests only"
            )
        if denied != (self.denial_reason is not None and self.appeal_deadline is not None) or (
            not denied and (self.denial_reason or self.appeal_deadline)
        ):
            raise InvariantViolationError(
                f"{self.auth_key}: denial reason and appeal deadline are required exactly when denied"
            )
        if approved:
            if not self.request_date <= self.approval_date <= self.expiration_date:  # type: ignore[operator]
                raise InvariantViolationError(f"{self.auth_key}: approval window out of order")
            if not 1 <= self.units_approved <= self.units_requested:  # type: ignore[operator]
                raise InvariantViolationError(
                    f"{self.auth_key}: approved units {self.units_approved} exceed "
                    f"requested {self.units_requested}"
                )
        return self


class Eligibility(BaseModel):
    """A coverage verification snapshot for one patient."""

    eligibility_key: str
    org_key: str

    patient_id: str
    patient_name: str
    patient_dob: date
    payer_key: str

    member_id: str
    group_number: str
    plan_name: str
    policy_number: str

    verification_date: date
    verification_method: VerificationMethod
    verification_status: CoverageStatus

    effective_date: date | None = None
    termination_date: date | None = None
    copay_amount: Money | None = None
    deductible_amount: Money | None = None
    deductible_met: Money | None = None
    out_of_pocket_max: Money | None = None
    out_of_pocket_met: Money | None = None

    coverage_type: str = "medical"
    network_status: NetworkStatus = NetworkStatus.UNKNOWN
    prior_auth_required: bool = False
    referral_required: bool = False

    secondary_insurance: bool = False
    coordination_of_benefits: str = "primary"

    verified_by: str
    verification_notes: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_coverage(self) -> Eligibility:
        active = self.verification_status == CoverageStatus.ACTIVE
        if (self.effective_date is None) == (self.termination_date is None):
            raise InvariantViolationError(
                f"{self.eligibility_key}: exactly one of effective or termination date is required"
            )
        if active != (self.effective_date is not None):
            raise InvariantViolationError(
                f"{self.eligibility_key}: active coverage needs an effective date, "
                "inactive coverage a termination date"
            )
        accumulators = (
            self.copay_amount,
            self.deductible_amount,
            self.deductible_met,
            self.out_of_pocket_max,
            self.out_of_pocket_met,
        )
        if active != all(a is not None for a in accumulators) or (
            not active and any(a is not None for a in accumulators)
        ):
            raise InvariantViolationError(
                f"{self.eligibility_key}: benefit accumulators are reported for active coverage only"
            )
        if active:
            if self.deductible_met > self.deductible_amount:  # type: ignore[operator]
                raise InvariantViolationError(f"{self.eligibility_key}: deductible met exceeds total")
            if self.out_of_pocket_met > self.out_of_pocket_max:  # type: ignore[operator]
                raise InvariantViolationError(f"{self.eligibility_key}: out-of-pocket met exceeds max")
        elif self.network_status != NetworkStatus.UNKNOWN:
            raise InvariantViolationError(
                f"{self.eligibility_key}: network status is unknown without active coverage"
            )
        return self


class ClaimsDataset(BaseModel):
    """The complete, cross-referenced bundle for one organization."""

    org_key: str
    seed: int
    as_of: date
    generated_at: datetime = Field(default_factory=datetime.now)
    claim_headers: list[ClaimHeader] = Field(default_factory=list)
    claim_lines: list[ClaimLine] = Field(default_factory=list)
    claim_status: list[ClaimStatusRecord] = Field(default_factory=list)
    remittance: list[Remittance] = Field(default_factory=list)
    prior_auth: list[PriorAuth] = Field(default_factory=list)
    eligibility: list[Eligibility] = Field(default_factory=list)
    rejected: dict[str, int] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_references(self) -> ClaimsDataset:
        claim_keys = [h.claim_key for h in self.claim_headers]
        duplicates = [k for k, n in Counter(claim_keys).items() if n > 1]
        if duplicates:
            raise ReferentialIntegrityError(f"Duplicate claim keys: {', '.join(duplicates)}")
        known = set(claim_keys)

        dependents: list[tuple[str, list[Any]]] = [
            ("claim line", self.claim_lines),
            ("status record", self.claim_status),
            ("remittance", self.remittance),
        ]
        for label, records in dependents:
            dangling = sorted({r.claim_key for r in records} - known)
            if dangling:
                raise ReferentialIntegrityError(
                    f"{label} references missing claim(s): {', '.join(dangling)}"
                )

        collections: list[list[Any]] = [
            self.claim_headers,
            self.claim_lines,
            self.claim_status,
            self.remittance,
            self.prior_auth,
            self.eligibility,
        ]
        foreign = {r.org_key for records in collections for r in records} - {self.org_key}
        if foreign:
            raise ReferentialIntegrityError(
                f"Dataset for {self.org_key} contains records of {', '.join(sorted(foreign))}"
            )

        approved_auths = {
            a.auth_number for a in self.prior_auth if a.auth_status == AuthStatus.APPROVED
        }
        orphaned = sorted(
            h.claim_key
            for h in self.claim_headers
            if h.prior_auth_number is not None and h.prior_auth_number not in approved_auths
        )
        if orphaned:
            raise ReferentialIntegrityError(
                f"Claims reference unknown prior authorizations: {', '.join(orphaned)}"
            )
        return self

    def header(self, claim_key: str) -> ClaimHeader | None:
        return next((h for h in self.claim_headers if h.claim_key == claim_key), None)

    def lines_for(self, claim_key: str) -> list[ClaimLine]:
        return sorted(
            (line for line in self.claim_lines if line.claim_key == claim_key),
            key=lambda line: line.line_number,
        )

    def history_for(self, claim_key: str) -> list[ClaimStatusRecord]:
        return sorted(
            (s for s in self.claim_status if s.claim_key == claim_key),
            key=lambda s: s.sequence,
        )

    def remittance_for(self, claim_key: str) -> Remittance | None:
        return next((r for r in self.remittance if r.claim_key == claim_key), None)

    def find_claims(
        self,
        status: ClaimStatusCode | None = None,
        department: str | None = None,
        payer_key: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[ClaimHeader]:
        """Filter headers the way dashboard consumers query them."""
        return [
            h
            for h in self.claim_headers
            if (status is None or h.current_status == status)
            and (department is None or h.department == department)
            and (payer_key is None or h.payer_key == payer_key)
            and (date_from is None or h.service_date_from >= date_from)
            and (date_to is None or h.service_date_from <= date_to)
        ]

    def summary(self) -> dict[str, Any]:
        by_status: dict[str, int] = defaultdict(int)
        for h in self.claim_headers:
            by_status[h.current_status.value] += 1
        return {
            "org_key": self.org_key,
            "seed": self.seed,
            "claim_headers": len(self.claim_headers),
            "claim_lines": len(self.claim_lines),
            "claim_status": len(self.claim_status),
            "remittance": len(self.remittance),
            "prior_auth": len(self.prior_auth),
            "eligibility": len(self.eligibility),
            "by_status": dict(by_status),
            "total_charges": sum((h.total_charge_amount for h in self.claim_headers), ZERO),
            "total_paid": sum((h.total_paid_amount for h in self.claim_headers), ZERO),
            "rejected": dict(self.rejected),
        }

    def to_bundle(self) -> dict[str, list[dict[str, Any]]]:
        """Serialize to the consumer-facing bundle shape."""
        return {
            "claimHeaders": [h.model_dump(mode="json") for h in self.claim_headers],
            "claimLines": [line.model_dump(mode="json") for line in self.claim_lines],
            "claimStatus": [s.model_dump(mode="json") for s in self.claim_status],
            "remittance": [r.model_dump(mode="json") for r in self.remittance],
            "priorAuth": [a.model_dump(mode="json") for a in self.prior_auth],
            "eligibility": [e.model_dump(mode="json") for e in self.eligibility],
        }
