"""Remittance generation for claims that received payment."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from revcycle.core.errors import InvariantViolationError
from revcycle.core.models import ClaimHeader, Remittance
from revcycle.core.money import ZERO, allocate
from revcycle.core.types import REMITTED_STATUSES, PaymentMethod
from revcycle.generators.base import RecordGenerator


if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

# contractual, deductible, coinsurance, copay
ADJUSTMENT_SPLIT = (70, 15, 10, 5)
MAX_PAYMENT_LAG_DAYS = 14
MAX_POSTING_LAG_DAYS = 3


class RemittanceReconciler(RecordGenerator):
    """Decomposes each paid claim's settlement into an 835-style remittance."""

    def reconcile(self, headers: Sequence[ClaimHeader]) -> list[Remittance]:
        """Build one remittance per paid or processed header."""
        remittances: list[Remittance] = []
        for header in headers:
            if header.current_status not in REMITTED_STATUSES:
                continue
            remittances.append(self.reconcile_header(header, len(remittances) + 1))
        logger.info("Reconciled %d remittances from %d claims", len(remittances), len(headers))
        return remittances

    def reconcile_header(self, header: ClaimHeader, sequence: int) -> Remittance:
        paid = header.total_paid_amount
        adjustment = header.total_adjustment_amount
        responsibility = header.total_charge_amount - paid - adjustment
        if responsibility < 0:
            raise InvariantViolationError(
                f"{header.claim_key}: paid {paid} + adjustment {adjustment} leaves negative "
                f"patient responsibility {responsibility}"
            )

        contractual, deductible, coinsurance, copay = allocate(adjustment, ADJUSTMENT_SPLIT)
        method = self._pick(list(PaymentMethod))
        payment_date = header.status_date.date() + timedelta(
            days=self.rng.randint(0, MAX_PAYMENT_LAG_DAYS)
        )
        reason = self._pick(self.catalog.adjustment_reasons) if adjustment > ZERO else None
        by_check = method == PaymentMethod.CHECK

        return Remittance(
            remittance_key=f"RMT-{header.org_key}-{sequence:08d}",
            claim_key=header.claim_key,
            org_key=header.org_key,
            remittance_advice_number=self._digits("RA", 10),
            check_number=self._digits("CHK", 8) if by_check else None,
            eft_trace_number=None if by_check else self._digits("EFT", 12),
            check_date=payment_date if by_check else None,
            payment_method=method,
            payment_amount=paid,
            payment_date=payment_date,
            adjustment_reason_code=reason.code if reason else None,
            adjustment_description=reason.description if reason else None,
            adjustment_amount=adjustment,
            contractual_amount=contractual,
            deductible_amount=deductible,
            coinsurance_amount=coinsurance,
            copay_amount=copay,
            processing_date=payment_date,
            posted_date=payment_date + timedelta(days=self.rng.randint(0, MAX_POSTING_LAG_DAYS)),
            posted_by=self._staff(),
            claim_control_number=self._digits("CCN", 12),
            patient_responsibility=responsibility,
        )
