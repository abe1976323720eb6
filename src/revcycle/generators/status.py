"""Status history generation and live status progression."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from revcycle.core.errors import InvariantViolationError
from revcycle.core.lifecycle import ClaimStateMachine
from revcycle.core.models import ClaimHeader, ClaimStatusRecord
from revcycle.core.types import (
    ClaimStatusCode,
    PriorityLevel,
    ResponseType,
    StatusEvent,
)
from revcycle.generators.base import RecordGenerator


if TYPE_CHECKING:
    import random
    from collections.abc import Sequence
    from decimal import Decimal

    from revcycle.config.catalogs import ReferenceCatalog

logger = logging.getLogger(__name__)

HOP_DAYS = (1, 7)
FOLLOW_UP_DAYS = 3
FOLLOW_UP_STATUSES = frozenset({ClaimStatusCode.PENDING, ClaimStatusCode.DENIED})
RESPONDED_STATUSES = frozenset(
    {
        ClaimStatusCode.PROCESSING,
        ClaimStatusCode.PROCESSED,
        ClaimStatusCode.PAID,
        ClaimStatusCode.DENIED,
        ClaimStatusCode.PENDING,
    }
)
REMITTANCE_STATUSES = frozenset(
    {ClaimStatusCode.PAID, ClaimStatusCode.PROCESSED, ClaimStatusCode.DENIED}
)
PAYER_FINAL_STATUSES = frozenset(
    {ClaimStatusCode.PAID, ClaimStatusCode.PROCESSED, ClaimStatusCode.DENIED}
)


def close_status(record: ClaimStatusRecord, until: datetime) -> ClaimStatusRecord:
    """Copy of ``record`` with its days in status counted up to ``until``."""
    return record.model_copy(
        update={"days_in_status": (until.date() - record.status_date.date()).days}
    )


def check_history(header: ClaimHeader, history: Sequence[ClaimStatusRecord]) -> None:
    """Verify a status history against its header.

    Raises:
        InvariantViolationError: If dates are not strictly increasing or the
            last status differs from the header's current status.
    """
    if not history:
        raise InvariantViolationError(f"{header.claim_key}: empty status history")
    for previous, current in zip(history, history[1:]):
        if current.status_date <= previous.status_date:
            raise InvariantViolationError(
                f"{header.claim_key}: status '{current.status_code.value}' at "
                f"{current.status_date} does not follow {previous.status_date}"
            )
    if history[-1].status_code != header.current_status:
        raise InvariantViolationError(
            f"{header.claim_key}: history ends in '{history[-1].status_code.value}' "
            f"but header is '{header.current_status.value}'"
        )


class StatusProgressionEngine(RecordGenerator):
    """Builds status histories by driving ``ClaimStateMachine``.

    ``progress`` replays the event path to each header's current status with
    1-7 day hops. ``advance`` applies one live event, as a payer response
    would, to an existing history.
    """

    def __init__(
        self,
        rng: random.Random,
        catalog: ReferenceCatalog,
        as_of: date,
        first_key_sequence: int = 1,
    ) -> None:
        """Initialize the engine.

        Args:
            rng: Seeded random source.
            catalog: Reference code tables.
            as_of: Reference date for ``days_in_status`` of the latest record.
            first_key_sequence: Sequence used for the next status key, so
                records appended to a stored dataset keep keys unique.
        """
        super().__init__(rng, catalog)
        self.as_of = as_of
        self._sequence = first_key_sequence - 1

    def progress(
        self, headers: Sequence[ClaimHeader]
    ) -> tuple[list[ClaimHeader], list[ClaimStatusRecord]]:
        """Build histories for all headers.

        Returns:
            Headers with ``status_date`` synchronized to their last status,
            and all status records in claim order.
        """
        synced: list[ClaimHeader] = []
        records: list[ClaimStatusRecord] = []
        for header in headers:
            history = self.build_history(header)
            synced.append(header.model_copy(update={"status_date": history[-1].status_date}))
            records.extend(history)
        logger.info("Built %d status records for %d claims", len(records), len(headers))
        return synced, records

    def build_history(self, header: ClaimHeader) -> list[ClaimStatusRecord]:
        events = ClaimStateMachine.events_to(header.current_status)
        states = ClaimStateMachine.replay(events)

        timestamps = [header.original_submission_date]
        for _ in states[1:]:
            timestamps.append(timestamps[-1] + timedelta(days=self.rng.randint(*HOP_DAYS)))

        history = [
            self._record(header, index + 1, state, at, is_last=index == len(states) - 1)
            for index, (state, at) in enumerate(zip(states, timestamps))
        ]
        history = self._with_days_in_status(history)
        check_history(header, history)
        return history

    def advance(
        self,
        header: ClaimHeader,
        history: Sequence[ClaimStatusRecord],
        event: StatusEvent,
        at: datetime,
        paid_amount: Decimal | None = None,
        adjustment_amount: Decimal | None = None,
    ) -> tuple[ClaimHeader, ClaimStatusRecord]:
        """Apply one event to a claim.

        Args:
            header: Current header; must match the end of ``history``.
            history: Existing status records for the claim, in order.
            event: Incoming lifecycle event.
            at: When the event happened; must be after the last status.
            paid_amount: New paid total when the event settles the claim.
            adjustment_amount: New adjustment total when the event settles the claim.

        Returns:
            The re-validated header and the new status record.
        """
        check_history(header, history)
        last = history[-1]
        if at <= last.status_date:
            raise InvariantViolationError(
                f"{header.claim_key}: event at {at} is not after last status {last.status_date}"
            )
        state = ClaimStateMachine.transition(header.current_status, event)
        updated = header.with_status(state, at, paid_amount, adjustment_amount)
        record = self._record(updated, last.sequence + 1, state, at, is_last=True)
        logger.info("%s: %s -> %s", header.claim_key, header.current_status.value, state.value)
        return updated, record

    def _record(
        self,
        header: ClaimHeader,
        sequence: int,
        state: ClaimStatusCode,
        at: datetime,
        is_last: bool,
    ) -> ClaimStatusRecord:
        self._sequence += 1
        responded = state in RESPONDED_STATUSES
        follow_up = state in FOLLOW_UP_STATUSES
        if state == ClaimStatusCode.SUBMITTED:
            clearinghouse_status, payer_status = "accepted", None
        elif state == ClaimStatusCode.ACKNOWLEDGED:
            clearinghouse_status, payer_status = "forwarded", "received"
        else:
            clearinghouse_status = None
            payer_status = "finalized" if is_last and state in PAYER_FINAL_STATUSES else "processing"
        return ClaimStatusRecord(
            status_key=f"CLM-STATUS-{header.org_key}-{self._sequence:08d}",
            claim_key=header.claim_key,
            org_key=header.org_key,
            sequence=sequence,
            status_code=state,
            status_description=state.description,
            status_date=at,
            effective_date=at,
            clearinghouse_status=clearinghouse_status,
            payer_status=payer_status,
            processing_note=state.description,
            response_received=responded,
            response_date=at if responded else None,
            response_type=(
                (ResponseType.REMITTANCE if state in REMITTANCE_STATUSES else ResponseType.CLAIM_STATUS)
                if responded
                else None
            ),
            assigned_to=self._staff(),
            priority_level=(
                PriorityLevel.HIGH
                if header.current_status == ClaimStatusCode.DENIED
                else PriorityLevel.NORMAL
            ),
            follow_up_required=follow_up,
            follow_up_date=at + timedelta(days=FOLLOW_UP_DAYS) if follow_up else None,
            days_in_status=max((self.as_of - at.date()).days, 0),
        )

    def _with_days_in_status(self, history: list[ClaimStatusRecord]) -> list[ClaimStatusRecord]:
        """Days spent in each status: until the next one, or until ``as_of`` for the last."""
        return [
            close_status(record, nxt.status_date) for record, nxt in zip(history, history[1:])
        ] + history[-1:]
