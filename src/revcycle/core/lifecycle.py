"""Claim lifecycle state machine."""

from __future__ import annotations

from typing import ClassVar

from revcycle.core.errors import InvalidTransitionError
from revcycle.core.types import ClaimStatusCode, StatusEvent


class ClaimStateMachine:
    """Explicit ``(state, event) -> state`` transition table for claims.

    submitted -> acknowledged -> processing -> {paid | processed | denied | pending}.
    ``pending`` is soft-terminal: a ``resume`` event returns the claim to
    ``processing`` once the payer has what it asked for.
    """

    TRANSITIONS: ClassVar[dict[tuple[ClaimStatusCode, StatusEvent], ClaimStatusCode]] = {
        (ClaimStatusCode.SUBMITTED, StatusEvent.ACKNOWLEDGE): ClaimStatusCode.ACKNOWLEDGED,
        (ClaimStatusCode.ACKNOWLEDGED, StatusEvent.REVIEW): ClaimStatusCode.PROCESSING,
        (ClaimStatusCode.PROCESSING, StatusEvent.PAY): ClaimStatusCode.PAID,
        (ClaimStatusCode.PROCESSING, StatusEvent.SETTLE): ClaimStatusCode.PROCESSED,
        (ClaimStatusCode.PROCESSING, StatusEvent.DENY): ClaimStatusCode.DENIED,
        (ClaimStatusCode.PROCESSING, StatusEvent.PEND): ClaimStatusCode.PENDING,
        (ClaimStatusCode.PENDING, StatusEvent.RESUME): ClaimStatusCode.PROCESSING,
    }

    INITIAL: ClassVar[ClaimStatusCode] = ClaimStatusCode.SUBMITTED

    @classmethod
    def transition(cls, state: ClaimStatusCode, event: StatusEvent) -> ClaimStatusCode:
        try:
            return cls.TRANSITIONS[(state, event)]
        except KeyError:
            raise InvalidTransitionError(
                f"Event '{event.value}' is not allowed from status '{state.value}'"
            ) from None

    @classmethod
    def allowed_events(cls, state: ClaimStatusCode) -> list[StatusEvent]:
        return [event for (source, event) in cls.TRANSITIONS if source == state]

    @classmethod
    def events_to(cls, target: ClaimStatusCode) -> list[StatusEvent]:
        """Shortest event path from the initial state to ``target``.

        Raises:
            InvalidTransitionError: If ``target`` cannot be reached.
        """
        frontier: list[tuple[ClaimStatusCode, list[StatusEvent]]] = [(cls.INITIAL, [])]
        seen = {cls.INITIAL}
        while frontier:
            state, path = frontier.pop(0)
            if state == target:
                return path
            for event in cls.allowed_events(state):
                nxt = cls.TRANSITIONS[(state, event)]
                if nxt not in seen:
                    seen.add(nxt)
                    frontier.append((nxt, [*path, event]))
        raise InvalidTransitionError(f"Status '{target.value}' is unreachable")

    @classmethod
    def replay(cls, events: list[StatusEvent]) -> list[ClaimStatusCode]:
        """States visited when ``events`` are applied from the initial state."""
        states = [cls.INITIAL]
        for event in events:
            states.append(cls.transition(states[-1], event))
        return states
