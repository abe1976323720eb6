"""Generators module - Seeded record generators for each dataset collection."""

from __future__ import annotations

from revcycle.generators.eligibility import EligibilityVerifier
from revcycle.generators.headers import ClaimHeaderFactory, settle_amounts
from revcycle.generators.lines import ClaimLineAllocator
from revcycle.generators.patients import PatientRosterBuilder
from revcycle.generators.prior_auth import PriorAuthWorkflow
from revcycle.generators.remittance import RemittanceReconciler
from revcycle.generators.status import StatusProgressionEngine, check_history


__all__ = [
    "ClaimHeaderFactory",
    "ClaimLineAllocator",
    "EligibilityVerifier",
    "PatientRosterBuilder",
    "PriorAuthWorkflow",
    "RemittanceReconciler",
    "StatusProgressionEngine",
    "check_history",
    "settle_amounts",
]
