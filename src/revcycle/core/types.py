"""Core type definitions and enums."""

from __future__ import annotations

from enum import Enum


class ClaimType(str, Enum):
    """Claim form families."""

    PROFESSIONAL = "professional"
    INSTITUTIONAL = "institutional"


class PaymentScenario(str, Enum):
    """Payment outcome drawn for a claim at generation time."""

    PAID = "paid"
    PARTIALLY_PAID = "partially_paid"
    DENIED = "denied"
    PENDING = "pending"

    @property
    def terminal_status(self) -> ClaimStatusCode:
        return _SCENARIO_STATUS[self]


class ClaimStatusCode(str, Enum):
    """Claim lifecycle states."""

    SUBMITTED = "submitted"
    ACKNOWLEDGED = "acknowledged"
    PROCESSING = "processing"
    PROCESSED = "processed"  # adjudicated with partial payment
    PAID = "paid"
    DENIED = "denied"
    PENDING = "pending"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def description(self) -> str:
        return _STATUS_DESCRIPTIONS[self]

    @property
    def scenario(self) -> PaymentScenario | None:
        """Payment outcome a terminal status settles; None while in flight."""
        return _STATUS_SCENARIO.get(self)


class StatusEvent(str, Enum):
    """Events that drive a claim through its lifecycle."""

    ACKNOWLEDGE = "acknowledge"
    REVIEW = "review"
    PAY = "pay"
    SETTLE = "settle"
    DENY = "deny"
    PEND = "pend"
    RESUME = "resume"


class LineStatus(str, Enum):
    """Adjudication outcome of a single claim line."""

    APPROVED = "approved"
    DENIED = "denied"
    PENDING = "pending"


class ResponseType(str, Enum):
    """Payer response transaction types."""

    CLAIM_STATUS = "277"
    REMITTANCE = "835"


class PriorityLevel(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class PaymentMethod(str, Enum):
    ACH = "ACH"
    EFT = "EFT"
    CHECK = "check"


class AuthStatus(str, Enum):
    """Prior authorization decision states."""

    APPROVED = "approved"
    DENIED = "denied"
    PENDING = "pending"


class AuthType(str, Enum):
    INITIAL = "initial"
    MODIFICATION = "modification"
    EXTENSION = "extension"


class CoverageStatus(str, Enum):
    """Eligibility verification outcome."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    TERMINATED = "terminated"


class VerificationMethod(str, Enum):
    ELECTRONIC = "electronic"
    PHONE = "phone"
    PORTAL = "portal"


class NetworkStatus(str, Enum):
    IN_NETWORK = "in-network"
    OUT_OF_NETWORK = "out-of-network"
    UNKNOWN = "unknown"


class Severity(str, Enum):
    """Severity of a reconciliation finding."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


TERMINAL_STATUSES = frozenset(
    {
        ClaimStatusCode.PAID,
        ClaimStatusCode.PROCESSED,
        ClaimStatusCode.DENIED,
        ClaimStatusCode.PENDING,
    }
)

REMITTED_STATUSES = frozenset({ClaimStatusCode.PAID, ClaimStatusCode.PROCESSED})

_SCENARIO_STATUS = {
    PaymentScenario.PAID: ClaimStatusCode.PAID,
    PaymentScenario.PARTIALLY_PAID: ClaimStatusCode.PROCESSED,
    PaymentScenario.DENIED: ClaimStatusCode.DENIED,
    PaymentScenario.PENDING: ClaimStatusCode.PENDING,
}

_STATUS_SCENARIO = {status: scenario for scenario, status in _SCENARIO_STATUS.items()}

_STATUS_DESCRIPTIONS = {
    ClaimStatusCode.SUBMITTED: "Claim submitted to payer",
    ClaimStatusCode.ACKNOWLEDGED: "Claim received by payer",
    ClaimStatusCode.PROCESSING: "Claim under review",
    ClaimStatusCode.PROCESSED: "Claim processed with partial payment",
    ClaimStatusCode.PAID: "Payment issued",
    ClaimStatusCode.DENIED: "Claim denied",
    ClaimStatusCode.PENDING: "Claim pending additional information",
}
