"""Claim line allocation: split header totals into service lines."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from revcycle.core.errors import InvariantViolationError, MalformedInputError
from revcycle.core.models import ClaimHeader, ClaimLine
from revcycle.core.money import CENT, allocate, within_tolerance
from revcycle.core.types import ClaimStatusCode, ClaimType, LineStatus
from revcycle.generators.base import RecordGenerator


if TYPE_CHECKING:
    from collections.abc import Sequence
    from decimal import Decimal

logger = logging.getLogger(__name__)

MAX_LINES = 5
JITTER = (0.5, 1.5)
LINE_DENIAL_SHARE = 0.5
MODIFIER_SHARE = 0.2
SECOND_DIAGNOSIS_SHARE = 0.4


def _fit_adjustments(
    claim_key: str, charges: list[Decimal], paid: list[Decimal], adjustments: list[Decimal]
) -> list[Decimal]:
    """Move rounding overflow so no line's paid + adjustment exceeds its charge.

    Column totals are preserved: any cent taken from an overflowing line is
    given to a line with room left.
    """
    fitted = list(adjustments)
    for i in range(len(charges)):
        excess = paid[i] + fitted[i] - charges[i]
        while excess > 0:
            room = [k for k in range(len(charges)) if charges[k] - paid[k] - fitted[k] > 0]
            if not room:
                raise InvariantViolationError(
                    f"{claim_key}: adjustments cannot fit within line charges"
                )
            k = room[0]
            moved = min(excess, charges[k] - paid[k] - fitted[k])
            fitted[i] -= moved
            fitted[k] += moved
            excess -= moved
    return fitted


class ClaimLineAllocator(RecordGenerator):
    """Produces 1..5 lines per header whose amounts reconcile to the header.

    Charges use allocate-then-reconcile: each line is first given one cent,
    then jittered weights are normalized, applied to the remaining total,
    rounded, and the residual cent goes to the largest line. No line is ever
    charged $0.00. Paid and adjustment amounts are then allocated with the line
    charges as weights, which is the header's paid/charge and
    adjustment/charge ratio applied per line with the same exact-sum guarantee.
    """

    def allocate(self, headers: Sequence[ClaimHeader]) -> list[ClaimLine]:
        lines: list[ClaimLine] = []
        for header in headers:
            lines.extend(self.allocate_header(header, first_sequence=len(lines) + 1))
        logger.info("Allocated %d lines across %d claims", len(lines), len(headers))
        return lines

    def allocate_header(
        self, header: ClaimHeader, first_sequence: int = 1, line_count: int | None = None
    ) -> list[ClaimLine]:
        charge = header.total_charge_amount
        if charge <= 0:
            raise MalformedInputError(f"{header.claim_key}: cannot allocate a zero charge")

        count = line_count or self.rng.randint(1, MAX_LINES)
        count = max(1, min(count, int(charge * 100)))
        if count == 1:
            charges = [charge]
        else:
            # every line starts at one cent; only the remainder is jittered
            weights = [self.rng.uniform(*JITTER) for _ in range(count)]
            charges = [CENT + share for share in allocate(charge - CENT * count, weights)]
        paid = allocate(header.total_paid_amount, charges)
        adjustments = _fit_adjustments(
            header.claim_key, charges, paid, allocate(header.total_adjustment_amount, charges)
        )
        statuses = self._line_statuses(header, count)

        lines = [
            self._build_line(header, number, first_sequence + number - 1, charges[i],
                             paid[i], adjustments[i], statuses[i])
            for i, number in enumerate(range(1, count + 1))
        ]
        self._verify(header, lines)
        return lines

    def resettle(self, header: ClaimHeader, lines: Sequence[ClaimLine]) -> list[ClaimLine]:
        """Re-allocate a header's current totals across its existing lines.

        Used after a live status change: line charges stay, paid and adjustment
        amounts follow the header again, and line outcomes are redrawn when the
        header reached a final status.
        """
        if not lines:
            raise InvariantViolationError(f"{header.claim_key}: no lines to resettle")
        lines = sorted(lines, key=lambda line: line.line_number)
        charges = [line.charge_amount for line in lines]
        paid = allocate(header.total_paid_amount, charges)
        adjustments = _fit_adjustments(
            header.claim_key, charges, paid, allocate(header.total_adjustment_amount, charges)
        )
        if header.current_status.is_terminal:
            statuses = self._line_statuses(header, len(lines))
        else:
            statuses = [line.line_status for line in lines]

        resettled: list[ClaimLine] = []
        for line, line_paid, adjustment, status in zip(lines, paid, adjustments, statuses):
            denial = None
            if status == LineStatus.DENIED:
                denial = self._pick(self.catalog.denial_reasons)
            resettled.append(
                ClaimLine.model_validate(
                    {
                        **line.model_dump(),
                        "paid_amount": line_paid,
                        "adjustment_amount": adjustment,
                        "allowed_amount": (
                            0 if status == LineStatus.DENIED else line.charge_amount - adjustment
                        ),
                        "line_status": status,
                        "denial_reason_code": denial.code if denial else None,
                        "denial_reason_description": denial.description if denial else None,
                        "remark_code": (
                            self._pick(self.catalog.remark_codes).code if denial else None
                        ),
                    }
                )
            )
        self._verify(header, resettled)
        return resettled

    def _line_statuses(self, header: ClaimHeader, count: int) -> list[LineStatus]:
        if header.current_status == ClaimStatusCode.PENDING:
            return [LineStatus.PENDING] * count
        if header.current_status != ClaimStatusCode.DENIED:
            return [LineStatus.APPROVED] * count
        statuses = [
            LineStatus.DENIED if self._chance(LINE_DENIAL_SHARE) else LineStatus.APPROVED
            for _ in range(count)
        ]
        if LineStatus.DENIED not in statuses:
            statuses[self.rng.randrange(count)] = LineStatus.DENIED
        return statuses

    def _build_line(
        self,
        header: ClaimHeader,
        number: int,
        sequence: int,
        charge: Decimal,
        paid: Decimal,
        adjustment: Decimal,
        status: LineStatus,
    ) -> ClaimLine:
        procedure = self._pick(self.catalog.procedure_codes)
        denial = remark = None
        if status == LineStatus.DENIED:
            denial = self._pick(self.catalog.denial_reasons)
            remark = self._pick(self.catalog.remark_codes).code
        pointers = (1, 2) if self._chance(SECOND_DIAGNOSIS_SHARE) else (1,)
        return ClaimLine(
            line_key=f"CLM-LINE-{header.org_key}-{sequence:08d}",
            claim_key=header.claim_key,
            org_key=header.org_key,
            line_number=number,
            revenue_code=(
                self._pick(self.catalog.revenue_codes).code
                if header.claim_type == ClaimType.INSTITUTIONAL
                else None
            ),
            procedure_code=procedure.code,
            procedure_description=procedure.description,
            modifiers=(
                (self._pick(self.catalog.modifiers),) if self._chance(MODIFIER_SHARE) else ()
            ),
            service_date=header.service_date_from,
            units=self.rng.randint(1, 4),
            charge_amount=charge,
            allowed_amount=0 if status == LineStatus.DENIED else charge - adjustment,
            paid_amount=paid,
            adjustment_amount=adjustment,
            line_status=status,
            denial_reason_code=denial.code if denial else None,
            denial_reason_description=denial.description if denial else None,
            remark_code=remark,
            rendering_provider_npi=header.rendering_provider_npi,
            diagnosis_pointers=pointers,
        )

    @staticmethod
    def _verify(header: ClaimHeader, lines: list[ClaimLine]) -> None:
        charge_sum = sum(line.charge_amount for line in lines)
        paid_sum = sum(line.paid_amount for line in lines)
        if not within_tolerance(charge_sum, header.total_charge_amount):
            raise InvariantViolationError(
                f"{header.claim_key}: line charges {charge_sum} != header {header.total_charge_amount}"
            )
        if not within_tolerance(paid_sum, header.total_paid_amount):
            raise InvariantViolationError(
                f"{header.claim_key}: line payments {paid_sum} != header {header.total_paid_amount}"
            )
