"""Converters between database rows and record models."""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel

from revcycle.core.models import (
    ClaimHeader,
    ClaimLine,
    ClaimsDataset,
    ClaimStatusRecord,
    Eligibility,
    PriorAuth,
    Remittance,
)


if TYPE_CHECKING:
    import sqlite3

M = TypeVar("M", bound=BaseModel)


def to_json(record: BaseModel) -> str:
    """Serialize a record for the ``data`` column; Decimals become strings."""
    return record.model_dump_json()


def row_to_record(row: sqlite3.Row, model: type[M]) -> M:
    """Convert a database row to its record model."""
    return model.model_validate_json(row["data"])


def row_to_header(row: sqlite3.Row) -> ClaimHeader:
    """Convert a header row; the ``version`` column is authoritative."""
    header = row_to_record(row, ClaimHeader)
    if header.version != row["version"]:
        header = header.model_copy(update={"version": row["version"]})
    return header


def header_params(header: ClaimHeader) -> tuple[Any, ...]:
    return (
        header.claim_key,
        header.org_key,
        header.payer_key,
        header.department,
        header.current_status.value,
        header.service_date_from.isoformat(),
        str(header.total_charge_amount),
        str(header.total_paid_amount),
        header.version,
        to_json(header),
    )


def line_params(line: ClaimLine) -> tuple[Any, ...]:
    return (line.line_key, line.claim_key, line.org_key, line.line_number, to_json(line))


def status_params(record: ClaimStatusRecord) -> tuple[Any, ...]:
    return (
        record.status_key,
        record.claim_key,
        record.org_key,
        record.sequence,
        record.status_code.value,
        to_json(record),
    )


def remittance_params(remittance: Remittance) -> tuple[Any, ...]:
    return (remittance.remittance_key, remittance.claim_key, remittance.org_key, to_json(remittance))


def prior_auth_params(auth: PriorAuth) -> tuple[Any, ...]:
    return (
        auth.auth_key,
        auth.org_key,
        auth.auth_number,
        auth.auth_status.value,
        auth.patient_id,
        to_json(auth),
    )


def eligibility_params(record: Eligibility) -> tuple[Any, ...]:
    return (
        record.eligibility_key,
        record.org_key,
        record.patient_id,
        record.verification_status.value,
        to_json(record),
    )


def rows_to_dataset(
    dataset_row: sqlite3.Row,
    headers: list[sqlite3.Row],
    lines: list[sqlite3.Row],
    status: list[sqlite3.Row],
    remittance: list[sqlite3.Row],
    prior_auth: list[sqlite3.Row],
    eligibility: list[sqlite3.Row],
) -> ClaimsDataset:
    """Rebuild a dataset; construction re-runs referential integrity checks."""
    return ClaimsDataset(
        org_key=dataset_row["org_key"],
        seed=dataset_row["seed"],
        as_of=date.fromisoformat(dataset_row["as_of"]),
        generated_at=datetime.fromisoformat(dataset_row["generated_at"]),
        claim_headers=[row_to_header(r) for r in headers],
        claim_lines=[row_to_record(r, ClaimLine) for r in lines],
        claim_status=[row_to_record(r, ClaimStatusRecord) for r in status],
        remittance=[row_to_record(r, Remittance) for r in remittance],
        prior_auth=[row_to_record(r, PriorAuth) for r in prior_auth],
        eligibility=[row_to_record(r, Eligibility) for r in eligibility],
        rejected=json.loads(dataset_row["rejected"] or "{}"),
    )
