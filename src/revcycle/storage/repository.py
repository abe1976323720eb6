"""SQLite-based claims repository with organization-scoped queries."""

from __future__ import annotations

import json
import logging
import random
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from revcycle.config.catalogs import default_catalog
from revcycle.core.errors import (
    ConcurrentModificationError,
    DataUnavailableError,
    InvariantViolationError,
)
from revcycle.core.models import (
    ClaimLine,
    ClaimStatusRecord,
    Eligibility,
    PriorAuth,
    Remittance,
)
from revcycle.core.money import ZERO, to_money
from revcycle.core.types import REMITTED_STATUSES
from revcycle.generators.lines import ClaimLineAllocator
from revcycle.generators.remittance import RemittanceReconciler
from revcycle.generators.status import StatusProgressionEngine, close_status
from revcycle.storage.converters import (
    eligibility_params,
    header_params,
    line_params,
    prior_auth_params,
    remittance_params,
    row_to_header,
    row_to_record,
    rows_to_dataset,
    status_params,
    to_json,
)
from revcycle.storage.schema import INIT_SCHEMA


if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import date, datetime
    from decimal import Decimal

    from revcycle.config.catalogs import ReferenceCatalog
    from revcycle.core.models import ClaimHeader, ClaimsDataset
    from revcycle.core.types import AuthStatus, ClaimStatusCode, CoverageStatus, StatusEvent

logger = logging.getLogger(__name__)

_INSERT_HEADER = """INSERT INTO claim_headers
    (claim_key, org_key, payer_key, department, current_status, service_date_from,
     total_charge_amount, total_paid_amount, version, data)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"""
_INSERT_LINE = "INSERT INTO claim_lines VALUES (?, ?, ?, ?, ?)"
_INSERT_STATUS = "INSERT INTO claim_status VALUES (?, ?, ?, ?, ?, ?)"
_INSERT_REMITTANCE = "INSERT INTO remittance VALUES (?, ?, ?, ?)"
_INSERT_PRIOR_AUTH = "INSERT INTO prior_auth VALUES (?, ?, ?, ?, ?, ?)"
_INSERT_ELIGIBILITY = "INSERT INTO eligibility VALUES (?, ?, ?, ?, ?)"


class ClaimsRepository:
    """SQLite repository for storing, querying and progressing claim datasets."""

    def __init__(
        self, db_path: str | Path = "revcycle.db", catalog: ReferenceCatalog | None = None
    ) -> None:
        self.db_path = Path(db_path)
        self.catalog = catalog or default_catalog()
        self._init_db()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connection() as conn:
            conn.executescript(INIT_SCHEMA)

    def save_dataset(self, dataset: ClaimsDataset) -> str:
        """Store a dataset, replacing any records previously saved for its organization."""
        org_key = dataset.org_key
        with self._connection() as conn:
            conn.execute("DELETE FROM datasets WHERE org_key = ?", (org_key,))
            conn.execute(
                """INSERT INTO datasets (org_key, seed, as_of, generated_at, rejected)
                VALUES (?, ?, ?, ?, ?)""",
                (org_key, dataset.seed, dataset.as_of.isoformat(),
                 dataset.generated_at.isoformat(), json.dumps(dataset.rejected)),
            )
            conn.executemany(_INSERT_HEADER, [header_params(h) for h in dataset.claim_headers])
            conn.executemany(_INSERT_LINE, [line_params(line) for line in dataset.claim_lines])
            conn.executemany(_INSERT_STATUS, [status_params(s) for s in dataset.claim_status])
            conn.executemany(_INSERT_REMITTANCE, [remittance_params(r) for r in dataset.remittance])
            conn.executemany(_INSERT_PRIOR_AUTH, [prior_auth_params(a) for a in dataset.prior_auth])
            conn.executemany(_INSERT_ELIGIBILITY, [eligibility_params(e) for e in dataset.eligibility])
        logger.info("Saved dataset for %s (%d claims)", org_key, len(dataset.claim_headers))
        return org_key

    def load_dataset(self, org_key: str) -> ClaimsDataset | None:
        with self._connection() as conn:
            dataset_row = conn.execute(
                "SELECT * FROM datasets WHERE org_key = ?", (org_key,)
            ).fetchone()
            if dataset_row is None:
                return None
            params = (org_key,)
            headers = conn.execute(
                "SELECT * FROM claim_headers WHERE org_key = ? ORDER BY claim_key", params
            ).fetchall()
            lines = conn.execute(
                "SELECT * FROM claim_lines WHERE org_key = ? ORDER BY line_key", params
            ).fetchall()
            status = conn.execute(
                "SELECT * FROM claim_status WHERE org_key = ? ORDER BY claim_key, sequence", params
            ).fetchall()
            remittance = conn.execute(
                "SELECT * FROM remittance WHERE org_key = ? ORDER BY remittance_key", params
            ).fetchall()
            prior_auth = conn.execute(
                "SELECT * FROM prior_auth WHERE org_key = ? ORDER BY auth_key", params
            ).fetchall()
            eligibility = conn.execute(
                "SELECT * FROM eligibility WHERE org_key = ? ORDER BY eligibility_key", params
            ).fetchall()
        return rows_to_dataset(
            dataset_row, headers, lines, status, remittance, prior_auth, eligibility
        )

    def find_claims(
        self,
        org_key: str,
        status: ClaimStatusCode | None = None,
        department: str | None = None,
        payer_key: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[ClaimHeader]:
        conditions, params = ["org_key = ?"], [org_key]
        if status:
            conditions.append("current_status = ?")
            params.append(status.value)
        if department:
            conditions.append("department = ?")
            params.append(department)
        if payer_key:
            conditions.append("payer_key = ?")
            params.append(payer_key)
        if date_from:
            conditions.append("service_date_from >= ?")
            params.append(date_from.isoformat())
        if date_to:
            conditions.append("service_date_from <= ?")
            params.append(date_to.isoformat())
        query = f"SELECT * FROM claim_headers WHERE {' AND '.join(conditions)} ORDER BY claim_key"
        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [row_to_header(r) for r in rows]

    def get_claim(self, claim_key: str) -> ClaimHeader | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM claim_headers WHERE claim_key = ?", (claim_key,)
            ).fetchone()
        return row_to_header(row) if row else None

    def get_lines(self, claim_key: str) -> list[ClaimLine]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM claim_lines WHERE claim_key = ? ORDER BY line_number", (claim_key,)
            ).fetchall()
        return [row_to_record(r, ClaimLine) for r in rows]

    def get_status_history(self, claim_key: str) -> list[ClaimStatusRecord]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM claim_status WHERE claim_key = ? ORDER BY sequence", (claim_key,)
            ).fetchall()
        return [row_to_record(r, ClaimStatusRecord) for r in rows]

    def get_remittance(self, claim_key: str) -> Remittance | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM remittance WHERE claim_key = ?", (claim_key,)
            ).fetchone()
        return row_to_record(row, Remittance) if row else None

    def find_prior_auths(
        self, org_key: str, status: AuthStatus | None = None, patient_id: str | None = None
    ) -> list[PriorAuth]:
        conditions, params = ["org_key = ?"], [org_key]
        if status:
            conditions.append("auth_status = ?")
            params.append(status.value)
        if patient_id:
            conditions.append("patient_id = ?")
            params.append(patient_id)
        query = f"SELECT * FROM prior_auth WHERE {' AND '.join(conditions)} ORDER BY auth_key"
        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [row_to_record(r, PriorAuth) for r in rows]

    def find_eligibility(
        self, org_key: str, status: CoverageStatus | None = None, patient_id: str | None = None
    ) -> list[Eligibility]:
        conditions, params = ["org_key = ?"], [org_key]
        if status:
            conditions.append("verification_status = ?")
            params.append(status.value)
        if patient_id:
            conditions.append("patient_id = ?")
            params.append(patient_id)
        query = (
            f"SELECT * FROM eligibility WHERE {' AND '.join(conditions)} ORDER BY eligibility_key"
        )
        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [row_to_record(r, Eligibility) for r in rows]

    def list_organizations(self) -> list[str]:
        with self._connection() as conn:
            rows = conn.execute("SELECT org_key FROM datasets ORDER BY org_key").fetchall()
        return [r["org_key"] for r in rows]

    def get_stats(self, org_key: str) -> dict[str, Any]:
        with self._connection() as conn:
            dataset_row = conn.execute(
                "SELECT seed, as_of FROM datasets WHERE org_key = ?", (org_key,)
            ).fetchone()
            if dataset_row is None:
                raise DataUnavailableError(f"No dataset stored for organization {org_key}")
            counts = {
                table: conn.execute(
                    f"SELECT COUNT(*) AS cnt FROM {table} WHERE org_key = ?", (org_key,)
                ).fetchone()["cnt"]
                for table in (
                    "claim_headers", "claim_lines", "claim_status",
                    "remittance", "prior_auth", "eligibility",
                )
            }
            by_status = conn.execute(
                """SELECT current_status, COUNT(*) AS cnt FROM claim_headers
                WHERE org_key = ? GROUP BY current_status""", (org_key,)
            ).fetchall()
            amounts = conn.execute(
                "SELECT total_charge_amount, total_paid_amount FROM claim_headers WHERE org_key = ?",
                (org_key,),
            ).fetchall()
        return {
            "org_key": org_key,
            "seed": dataset_row["seed"],
            "as_of": dataset_row["as_of"],
            **counts,
            "by_status": {r["current_status"]: r["cnt"] for r in by_status},
            "total_charges": sum((to_money(r["total_charge_amount"]) for r in amounts), ZERO),
            "total_paid": sum((to_money(r["total_paid_amount"]) for r in amounts), ZERO),
        }

    def apply_status_event(
        self,
        claim_key: str,
        event: StatusEvent,
        at: datetime,
        expected_version: int,
        paid_amount: Decimal | None = None,
        adjustment_amount: Decimal | None = None,
    ) -> ClaimHeader:
        """Advance one stored claim by a lifecycle event.

        The header update, the previous status record's days in status, the new
        status record, line resettlement and, when the claim becomes paid or
        processed, the remittance posting all happen in one transaction.

        Args:
            claim_key: Claim to advance.
            event: Lifecycle event to apply.
            at: Event timestamp; must be after the claim's last status.
            expected_version: Header version the caller last read.
            paid_amount: New paid total for pay/settle events.
            adjustment_amount: New adjustment total for pay/settle events.

        Returns:
            The updated header.

        Raises:
            DataUnavailableError: If the claim is not stored.
            ConcurrentModificationError: If the stored version differs.
            InvariantViolationError: If the event breaks the claim's settlement
                rules, such as a pay or settle event without a payment.
        """
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM claim_headers WHERE claim_key = ?", (claim_key,)
            ).fetchone()
            if row is None:
                raise DataUnavailableError(f"Claim {claim_key} is not stored")
            if row["version"] != expected_version:
                raise ConcurrentModificationError(
                    f"{claim_key}: expected version {expected_version}, found {row['version']}"
                )
            header = row_to_header(row)
            org_key = header.org_key
            history = [
                row_to_record(r, ClaimStatusRecord)
                for r in conn.execute(
                    "SELECT * FROM claim_status WHERE claim_key = ? ORDER BY sequence",
                    (claim_key,),
                ).fetchall()
            ]
            lines = [
                row_to_record(r, ClaimLine)
                for r in conn.execute(
                    "SELECT * FROM claim_lines WHERE claim_key = ?", (claim_key,)
                ).fetchall()
            ]
            status_count = conn.execute(
                "SELECT COUNT(*) AS cnt FROM claim_status WHERE org_key = ?", (org_key,)
            ).fetchone()["cnt"]

            rng = random.Random(f"{claim_key}:{expected_version}")
            engine = StatusProgressionEngine(
                rng, self.catalog, as_of=at.date(), first_key_sequence=status_count + 1
            )
            updated, record = engine.advance(
                header, history, event, at, paid_amount, adjustment_amount
            )

            result = conn.execute(
                """UPDATE claim_headers
                SET current_status = ?, total_paid_amount = ?, version = ?, data = ?
                WHERE claim_key = ? AND version = ?""",
                (updated.current_status.value, str(updated.total_paid_amount), updated.version,
                 to_json(updated), claim_key, expected_version),
            )
            if result.rowcount != 1:
                raise ConcurrentModificationError(f"{claim_key} changed during update")
            closed = close_status(history[-1], at)
            conn.execute(
                "UPDATE claim_status SET data = ? WHERE status_key = ?",
                (to_json(closed), closed.status_key),
            )
            conn.execute(_INSERT_STATUS, status_params(record))

            for line in ClaimLineAllocator(rng, self.catalog).resettle(updated, lines):
                conn.execute(
                    "UPDATE claim_lines SET data = ? WHERE line_key = ?",
                    (to_json(line), line.line_key),
                )

            if updated.current_status in REMITTED_STATUSES:
                self._post_remittance(conn, updated, rng)

        logger.info(
            "%s advanced to %s (version %d)",
            claim_key, updated.current_status.value, updated.version,
        )
        return updated

    def _post_remittance(
        self, conn: sqlite3.Connection, header: ClaimHeader, rng: random.Random
    ) -> None:
        existing = conn.execute(
            "SELECT COUNT(*) AS cnt FROM remittance WHERE claim_key = ?", (header.claim_key,)
        ).fetchone()["cnt"]
        if existing:
            raise InvariantViolationError(f"{header.claim_key} already has a remittance")
        sequence = conn.execute(
            "SELECT COUNT(*) AS cnt FROM remittance WHERE org_key = ?", (header.org_key,)
        ).fetchone()["cnt"] + 1
        remittance = RemittanceReconciler(rng, self.catalog).reconcile_header(header, sequence)
        conn.execute(_INSERT_REMITTANCE, remittance_params(remittance))

