"""revcycle - Claims revenue-cycle dataset engine.

This package builds internally consistent, reproducible claims datasets for
an organization:
- Claim headers, service lines and status histories
- Remittances reconciled against payments and adjustments
- Prior authorizations and eligibility verifications
- Reconciliation checks and a sqlite repository for stored datasets
"""

from __future__ import annotations

from revcycle.config.settings import Settings
from revcycle.core.lifecycle import ClaimStateMachine
from revcycle.core.models import ClaimHeader, ClaimLine, ClaimsDataset
from revcycle.core.types import ClaimStatusCode, PaymentScenario, StatusEvent
from revcycle.orchestrator.assembler import DatasetAssembler
from revcycle.orchestrator.service import DatasetResponse, DatasetService
from revcycle.storage.repository import ClaimsRepository


__version__ = "0.1.0"

__all__ = [
    "ClaimHeader",
    "ClaimLine",
    "ClaimStateMachine",
    "ClaimStatusCode",
    "ClaimsDataset",
    "ClaimsRepository",
    "DatasetAssembler",
    "DatasetResponse",
    "DatasetService",
    "PaymentScenario",
    "Settings",
    "StatusEvent",
]
