"""Dataset-wide reconciliation checks.

Each record validates itself on construction; these checks cover the rules
that span collections (lines against headers, histories against headers,
remittances against headers) so a dataset loaded from storage can be audited
the same way a freshly generated one is.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from pydantic import BaseModel

from revcycle.core.money import ZERO, within_tolerance
from revcycle.core.types import REMITTED_STATUSES, ClaimStatusCode, LineStatus, Severity


if TYPE_CHECKING:
    from datetime import date

    from revcycle.core.models import (
        ClaimHeader,
        ClaimLine,
        ClaimsDataset,
        ClaimStatusRecord,
        Remittance,
    )

SEVERITY_ORDER = {Severity.HIGH: 0, Severity.MEDIUM: 1, Severity.LOW: 2}

# Headers whose lines may carry a denial
LINE_DENIAL_STATUSES = frozenset({ClaimStatusCode.DENIED, ClaimStatusCode.PROCESSED})


class ReconciliationFinding(BaseModel):
    """One failed check."""

    check_name: str
    severity: Severity
    claim_key: str | None = None
    detail: str

    model_config = {"frozen": True}


def run_reconciliation_checks(dataset: ClaimsDataset) -> list[ReconciliationFinding]:
    """Run every reconciliation check and return findings, HIGH first.

    Checks:
    - line_charge_sum / line_paid_sum: lines add up to their header
    - line_denial_scope: denied lines only under denied or processed headers
    - missing_lines / missing_status_history: every claim has both
    - status_history_order: strictly increasing status dates
    - status_history_terminal: last status equals the header status
    - remittance_coverage: paid and processed claims have one remittance, others none
    - remittance_payment: remittance payment equals header paid
    - remittance_adjustment: remittance adjustment equals header adjustment
    - patient_responsibility: charge - paid - adjustment equals patient responsibility
    - follow_up_overdue: latest status has a follow-up date before ``as_of``
    """
    lines: dict[str, list[ClaimLine]] = defaultdict(list)
    for line in dataset.claim_lines:
        lines[line.claim_key].append(line)
    history: dict[str, list[ClaimStatusRecord]] = defaultdict(list)
    for record in dataset.claim_status:
        history[record.claim_key].append(record)
    remittances: dict[str, list[Remittance]] = defaultdict(list)
    for remittance in dataset.remittance:
        remittances[remittance.claim_key].append(remittance)

    findings: list[ReconciliationFinding] = []
    for header in dataset.claim_headers:
        key = header.claim_key
        findings.extend(_check_lines(header, lines.get(key, [])))
        findings.extend(
            _check_history(
                header, sorted(history.get(key, []), key=lambda r: r.sequence), dataset.as_of
            )
        )
        findings.extend(_check_remittance(header, remittances.get(key, [])))

    findings.sort(key=lambda f: SEVERITY_ORDER[f.severity])
    return findings


def _check_lines(header: ClaimHeader, lines: list[ClaimLine]) -> list[ReconciliationFinding]:
    key = header.claim_key
    if not lines:
        return [ReconciliationFinding(
            check_name="missing_lines", severity=Severity.HIGH, claim_key=key,
            detail=f"Claim {key} has no service lines",
        )]

    findings: list[ReconciliationFinding] = []
    charge_sum = sum((line.charge_amount for line in lines), ZERO)
    if not within_tolerance(charge_sum, header.total_charge_amount):
        findings.append(ReconciliationFinding(
            check_name="line_charge_sum", severity=Severity.HIGH, claim_key=key,
            detail=f"Line charges sum to ${charge_sum} but header charge is "
            f"${header.total_charge_amount}",
        ))
    paid_sum = sum((line.paid_amount for line in lines), ZERO)
    if not within_tolerance(paid_sum, header.total_paid_amount):
        findings.append(ReconciliationFinding(
            check_name="line_paid_sum", severity=Severity.HIGH, claim_key=key,
            detail=f"Line payments sum to ${paid_sum} but header paid is "
            f"${header.total_paid_amount}",
        ))
    denied = [line.line_number for line in lines if line.line_status == LineStatus.DENIED]
    if denied and header.current_status not in LINE_DENIAL_STATUSES:
        findings.append(ReconciliationFinding(
            check_name="line_denial_scope", severity=Severity.MEDIUM, claim_key=key,
            detail=f"Lines {denied} are denied on a {header.current_status.value} claim",
        ))
    return findings


def _check_history(
    header: ClaimHeader, history: list[ClaimStatusRecord], as_of: date
) -> list[ReconciliationFinding]:
    key = header.claim_key
    if not history:
        return [ReconciliationFinding(
            check_name="missing_status_history", severity=Severity.HIGH, claim_key=key,
            detail=f"Claim {key} has no status history",
        )]

    findings: list[ReconciliationFinding] = []
    for previous, current in zip(history, history[1:]):
        if current.status_date <= previous.status_date:
            findings.append(ReconciliationFinding(
                check_name="status_history_order", severity=Severity.HIGH, claim_key=key,
                detail=f"Status {current.sequence} ({current.status_date}) does not follow "
                f"status {previous.sequence} ({previous.status_date})",
            ))
    last = history[-1]
    if last.status_code != header.current_status:
        findings.append(ReconciliationFinding(
            check_name="status_history_terminal", severity=Severity.HIGH, claim_key=key,
            detail=f"History ends in '{last.status_code.value}' but header is "
            f"'{header.current_status.value}'",
        ))
    if last.follow_up_date is not None and last.follow_up_date.date() < as_of:
        findings.append(ReconciliationFinding(
            check_name="follow_up_overdue", severity=Severity.LOW, claim_key=key,
            detail=f"Follow-up due {last.follow_up_date.date()} on a "
            f"{last.status_code.value} claim",
        ))
    return findings


def _check_remittance(
    header: ClaimHeader, remittances: list[Remittance]
) -> list[ReconciliationFinding]:
    key = header.claim_key
    expected = header.current_status in REMITTED_STATUSES
    if len(remittances) != (1 if expected else 0):
        return [ReconciliationFinding(
            check_name="remittance_coverage", severity=Severity.HIGH, claim_key=key,
            detail=f"{header.current_status.value} claim has {len(remittances)} remittance(s), "
            f"expected {1 if expected else 0}",
        )]
    if not remittances:
        return []

    findings: list[ReconciliationFinding] = []
    remittance = remittances[0]
    if not within_tolerance(remittance.payment_amount, header.total_paid_amount):
        findings.append(ReconciliationFinding(
            check_name="remittance_payment", severity=Severity.HIGH, claim_key=key,
            detail=f"Remittance pays ${remittance.payment_amount} but header paid is "
            f"${header.total_paid_amount}",
        ))
    if not within_tolerance(remittance.adjustment_amount, header.total_adjustment_amount):
        findings.append(ReconciliationFinding(
            check_name="remittance_adjustment", severity=Severity.HIGH, claim_key=key,
            detail=f"Remittance adjusts ${remittance.adjustment_amount} but header adjustment is "
            f"${header.total_adjustment_amount}",
        ))
    residual = header.total_charge_amount - header.total_paid_amount - header.total_adjustment_amount
    if not within_tolerance(residual, remittance.patient_responsibility):
        findings.append(ReconciliationFinding(
            check_name="patient_responsibility", severity=Severity.HIGH, claim_key=key,
            detail=f"Charge - paid - adjustment = ${residual}, but patient responsibility is "
            f"${remittance.patient_responsibility}",
        ))
    return findings
