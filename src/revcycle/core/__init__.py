"""Core module - Record models, enums, errors and money helpers."""

from __future__ import annotations

from revcycle.core.errors import (
    ConcurrentModificationError,
    DataUnavailableError,
    InvalidTransitionError,
    InvariantViolationError,
    MalformedInputError,
    ReferentialIntegrityError,
    RevenueCycleError,
)
from revcycle.core.lifecycle import ClaimStateMachine
from revcycle.core.models import (
    ClaimHeader,
    ClaimLine,
    ClaimsDataset,
    ClaimStatusRecord,
    Eligibility,
    PatientIdentity,
    PriorAuth,
    Remittance,
)
from revcycle.core.types import (
    AuthStatus,
    ClaimStatusCode,
    ClaimType,
    CoverageStatus,
    LineStatus,
    PaymentScenario,
    StatusEvent,
)


__all__ = [
    # Enums
    "AuthStatus",
    # Models
    "ClaimHeader",
    "ClaimLine",
    # Lifecycle
    "ClaimStateMachine",
    "ClaimStatusCode",
    "ClaimStatusRecord",
    "ClaimType",
    "ClaimsDataset",
    # Errors
    "ConcurrentModificationError",
    "CoverageStatus",
    "DataUnavailableError",
    "Eligibility",
    "InvalidTransitionError",
    "InvariantViolationError",
    "LineStatus",
    "MalformedInputError",
    "PatientIdentity",
    "PaymentScenario",
    "PriorAuth",
    "ReferentialIntegrityError",
    "Remittance",
    "RevenueCycleError",
    "StatusEvent",
]
