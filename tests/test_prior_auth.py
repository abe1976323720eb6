"""Tests for the prior authorization workflow."""

from __future__ import annotations

import random
from collections import Counter
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from revcycle.core.errors import InvariantViolationError, MalformedInputError
from revcycle.core.models import PriorAuth
from revcycle.core.types import AuthStatus
from revcycle.generators.prior_auth import PriorAuthWorkflow


if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import date

    from revcycle.config.catalogs import ReferenceCatalog
    from revcycle.core.models import ClaimHeader, PatientIdentity


@pytest.fixture
def workflow(catalog: ReferenceCatalog, as_of: date) -> PriorAuthWorkflow:
    return PriorAuthWorkflow(random.Random(9), catalog, as_of)


class TestGenerate:
    def test_outcomes_and_invariants(
        self, workflow: PriorAuthWorkflow, roster: list[PatientIdentity], as_of: date
    ) -> None:
        auths = workflow.generate("ORG1", 200, roster)
        assert len(auths) == 200
        assert workflow.rejected == 0
        assert auths[0].auth_key == "AUTH-ORG1-000001"
        outcomes = Counter(a.auth_status for a in auths)
        assert outcomes[AuthStatus.APPROVED] > outcomes[AuthStatus.DENIED]
        assert outcomes[AuthStatus.APPROVED] > outcomes[AuthStatus.PENDING]

        numbers = [a.auth_number for a in auths if a.auth_number is not None]
        assert len(numbers) == len(set(numbers)) == outcomes[AuthStatus.APPROVED]
        for auth in auths:
            assert auth.patient_id in {p.patient_id for p in roster}
            if auth.auth_status == AuthStatus.APPROVED:
                assert auth.auth_number.startswith("AUTH")
                assert auth.request_date <= auth.approval_date <= auth.expiration_date
                assert auth.expiration_date - auth.approval_date <= timedelta(days=90)
                assert auth.review_date == auth.approval_date
            elif auth.auth_status == AuthStatus.DENIED:
                assert auth.denial_reason
                assert auth.appeal_deadline > as_of
            else:
                assert auth.reviewer_name is None
                assert auth.review_date is None

    def test_builds_own_roster(self, workflow: PriorAuthWorkflow) -> None:
        auths = workflow.generate("ORG3", 5)
        assert len(auths) == 5
        assert {a.org_key for a in auths} == {"ORG3"}

    def test_rejects_non_positive_count(self, workflow: PriorAuthWorkflow) -> None:
        with pytest.raises(MalformedInputError):
            workflow.generate("ORG1", 0)

    def test_explicit_outcome(
        self, workflow: PriorAuthWorkflow, roster: list[PatientIdentity]
    ) -> None:
        denied = workflow.build("ORG1", 1, roster[0], AuthStatus.DENIED)
        assert denied.auth_number is None
        assert denied.approval_date is None
        assert denied.reviewer_name is not None


class TestLinkClaims:
    def test_links_only_approved_numbers_once(
        self,
        workflow: PriorAuthWorkflow,
        roster: list[PatientIdentity],
        make_header: Callable[..., ClaimHeader],
    ) -> None:
        auths = workflow.generate("ORG1", 20, roster)
        headers = [make_header() for _ in range(60)]
        linked = workflow.link_claims(headers, auths)
        assert [h.claim_key for h in linked] == [h.claim_key for h in headers]

        approved = {a.auth_number for a in auths if a.auth_status == AuthStatus.APPROVED}
        used = [h.prior_auth_number for h in linked if h.prior_auth_number is not None]
        assert used
        assert len(used) == len(set(used))
        assert set(used) <= approved

    def test_no_approved_auths_links_nothing(
        self,
        workflow: PriorAuthWorkflow,
        roster: list[PatientIdentity],
        make_header: Callable[..., ClaimHeader],
    ) -> None:
        pending = [workflow.build("ORG1", i, roster[0], AuthStatus.PENDING) for i in (1, 2)]
        headers = [make_header() for _ in range(10)]
        assert workflow.link_claims(headers, pending) == headers


class TestPriorAuthInvariants:
    def test_approved_without_number(
        self, workflow: PriorAuthWorkflow, roster: list[PatientIdentity]
    ) -> None:
        data = workflow.build("ORG1", 1, roster[0], AuthStatus.APPROVED).model_dump()
        data["auth_number"] = None
        with pytest.raises(InvariantViolationError):
            PriorAuth.model_validate(data)

    def test_pending_with_expiration(
        self, workflow: PriorAuthWorkflow, roster: list[PatientIdentity]
    ) -> None:
        data = workflow.build("ORG1", 1, roster[0], AuthStatus.PENDING).model_dump()
        data["expiration_date"] = data["request_date"]
        with pytest.raises(InvariantViolationError):
            PriorAuth.model_validate(data)

    def test_denied_without_appeal_deadline(
        self, workflow: PriorAuthWorkflow, roster: list[PatientIdentity]
    ) -> None:
        data = workflow.build("ORG1", 1, roster[0], AuthStatus.DENIED).model_dump()
        data["appeal_deadline"] = None
        with pytest.raises(InvariantViolationError):
            PriorAuth.model_validate(data)
