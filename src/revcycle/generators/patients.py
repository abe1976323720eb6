"""Patient roster shared by the claim, prior-auth and eligibility generators."""

from __future__ import annotations

import logging
from datetime import date

from revcycle.core.errors import MalformedInputError
from revcycle.core.models import PatientIdentity
from revcycle.generators.base import RecordGenerator, sequence_key


logger = logging.getLogger(__name__)

DOB_RANGE = (date(1940, 1, 1), date(2010, 1, 1))


class PatientRosterBuilder(RecordGenerator):
    """Draws a roster of distinct patients for one organization."""

    def build(self, org_key: str, size: int) -> list[PatientIdentity]:
        if size <= 0:
            raise MalformedInputError(f"Patient roster size must be positive, got {size}")
        seen: set[str] = set()
        roster: list[PatientIdentity] = []
        while len(roster) < size:
            patient_id = self._digits("MRN", 6)
            if patient_id in seen:
                continue
            seen.add(patient_id)
            roster.append(
                PatientIdentity(
                    patient_id=patient_id,
                    name=self._pick(self.catalog.patient_names),
                    dob=self._date_between(*DOB_RANGE),
                    gender=self._pick("MF"),
                    account_number=sequence_key("ACC", org_key, len(roster) + 1),
                )
            )
        logger.debug("Built roster of %d patients for %s", size, org_key)
        return roster
