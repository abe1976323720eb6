"""Tests for the command-line interface."""

from __future__ import annotations

import json
import sys
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from revcycle import cli
from revcycle.core.types import ClaimStatusCode


if TYPE_CHECKING:
    from pathlib import Path

    from revcycle.core.models import ClaimsDataset
    from revcycle.storage.repository import ClaimsRepository


def run(monkeypatch: pytest.MonkeyPatch, *args: str) -> None:
    monkeypatch.setattr(sys, "argv", ["revcycle", *args])
    cli.main()


@pytest.fixture(autouse=True)
def _pinned_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REVCYCLE_AS_OF", "2025-01-15")
    monkeypatch.delenv("REVCYCLE_SEED", raising=False)
    monkeypatch.delenv("REVCYCLE_CLAIM_COUNT", raising=False)


def test_generate_writes_bundle(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    output = tmp_path / "bundle.json"
    run(monkeypatch, "generate", "ORG1", "--count", "4", "--seed", "5", "--no-save",
        "--output", str(output))
    bundle = json.loads(output.read_text(encoding="utf-8"))
    assert len(bundle["claimHeaders"]) == 4
    assert len(bundle["claimStatus"]) == 16


def test_generate_many_writes_bundle_per_org(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    output = tmp_path / "bundles.json"
    run(monkeypatch, "generate", "ORG1", "ORG2", "-c", "3", "-s", "5", "--no-save", "-o",
        str(output))
    bundles = json.loads(output.read_text(encoding="utf-8"))
    assert sorted(bundles) == ["ORG1", "ORG2"]


def test_generate_save_then_validate(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    db = str(tmp_path / "claims.db")
    run(monkeypatch, "generate", "ORG1", "--count", "5", "--seed", "5", "--db", db)
    run(monkeypatch, "validate", "ORG1", "--db", db)
    run(monkeypatch, "stats", "ORG1", "--db", db)
    run(monkeypatch, "query", "ORG1", "--status", "paid", "--db", db)


def test_missing_dataset_exits_nonzero(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        run(monkeypatch, "stats", "ORG1", "--db", str(tmp_path / "empty.db"))
    assert exc_info.value.code == 1


def test_no_command_prints_help(monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(SystemExit) as exc_info:
        run(monkeypatch)
    assert exc_info.value.code == 0


def test_advance_resumes_pending_claim(
    monkeypatch: pytest.MonkeyPatch, repository: ClaimsRepository, pending_dataset: ClaimsDataset
) -> None:
    repository.save_dataset(pending_dataset)
    header = pending_dataset.claim_headers[0]
    at = (header.status_date + timedelta(days=1)).isoformat()
    run(monkeypatch, "advance", header.claim_key, "resume", "--at", at,
        "--db", str(repository.db_path))
    advanced = repository.get_claim(header.claim_key)
    assert advanced.current_status == ClaimStatusCode.PROCESSING
    assert advanced.version == header.version + 1


def test_advance_settle_without_payment_exits_nonzero(
    monkeypatch: pytest.MonkeyPatch, repository: ClaimsRepository, pending_dataset: ClaimsDataset
) -> None:
    repository.save_dataset(pending_dataset)
    header = pending_dataset.claim_headers[0]
    db = str(repository.db_path)
    resume_at = header.status_date + timedelta(days=1)
    run(monkeypatch, "advance", header.claim_key, "resume", "--at", resume_at.isoformat(),
        "--db", db)
    with pytest.raises(SystemExit) as exc_info:
        run(monkeypatch, "advance", header.claim_key, "settle", "--at",
            (resume_at + timedelta(days=1)).isoformat(), "--db", db)
    assert exc_info.value.code == 1
    assert repository.get_claim(header.claim_key).current_status == ClaimStatusCode.PROCESSING
