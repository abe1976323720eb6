"""Command-line interface for revcycle."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from revcycle.config.settings import Settings
from revcycle.console.logger import GenerationConsole
from revcycle.core.errors import DataUnavailableError
from revcycle.core.types import ClaimStatusCode, Severity, StatusEvent
from revcycle.orchestrator.assembler import DatasetAssembler
from revcycle.orchestrator.service import DatasetService
from revcycle.storage.repository import ClaimsRepository
from revcycle.validation.reconciliation import run_reconciliation_checks


console = GenerationConsole()


async def generate_datasets(
    org_keys: list[str],
    claim_count: int | None = None,
    seed: int | None = None,
    save_to_db: bool = True,
    db_path: str | None = None,
    output_path: str | None = None,
) -> None:
    """Generate datasets for one or more organizations."""
    settings = Settings()
    console.setup_logging(settings.log_level)
    assembler = DatasetAssembler(settings)
    detail = f"Claims per organization: {claim_count or settings.generation.claim_count}"
    console.print_header(", ".join(org_keys), detail)

    with console.generation_progress() as progress:
        task = progress.add_task(f"Assembling {len(org_keys)} organization(s)...", total=None)
        datasets = await assembler.assemble_many(org_keys, claim_count=claim_count, seed=seed)
        progress.update(task, completed=True)

    if save_to_db:
        repo = ClaimsRepository(db_path or settings.storage.db_path, assembler.catalog)
        for dataset in datasets.values():
            repo.save_dataset(dataset)
    for dataset in datasets.values():
        console.print_dataset_summary(dataset)

    if output_path:
        bundles = {org: dataset.to_bundle() for org, dataset in datasets.items()}
        payload = bundles[org_keys[0]] if len(org_keys) == 1 else bundles
        Path(output_path).write_text(json.dumps(payload, indent=2), encoding="utf-8")
        console.print_success(f"Bundle written to {output_path}")
    elif save_to_db:
        console.print_success(f"Saved {len(datasets)} dataset(s) to {repo.db_path}")


async def query_claims(
    org_key: str,
    status: str | None = None,
    department: str | None = None,
    payer_key: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    db_path: str | None = None,
) -> None:
    """Query stored claims."""
    settings = Settings()
    repo = ClaimsRepository(db_path or settings.storage.db_path)
    claims = repo.find_claims(
        org_key,
        status=ClaimStatusCode(status) if status else None,
        department=department,
        payer_key=payer_key,
        date_from=date.fromisoformat(date_from) if date_from else None,
        date_to=date.fromisoformat(date_to) if date_to else None,
    )
    console.print_claims(claims)


async def show_stats(org_key: str, db_path: str | None = None) -> None:
    """Show stored dataset statistics."""
    settings = Settings()
    repo = ClaimsRepository(db_path or settings.storage.db_path)
    console.print_stats(repo.get_stats(org_key))


async def validate_dataset(org_key: str, db_path: str | None = None) -> bool:
    """Run reconciliation checks over a stored dataset."""
    settings = Settings()
    service = DatasetService(repository=ClaimsRepository(db_path or settings.storage.db_path))
    findings = run_reconciliation_checks(service.require(org_key))
    console.print_findings(findings)
    return not any(f.severity == Severity.HIGH for f in findings)


async def advance_claim(
    claim_key: str,
    event: str,
    paid_amount: str | None = None,
    adjustment_amount: str | None = None,
    at: str | None = None,
    expected_version: int | None = None,
    db_path: str | None = None,
) -> None:
    """Apply one lifecycle event to a stored claim."""
    settings = Settings()
    console.setup_logging(settings.log_level)
    repo = ClaimsRepository(db_path or settings.storage.db_path)
    claim = repo.get_claim(claim_key)
    if claim is None:
        raise DataUnavailableError(f"Claim {claim_key} is not stored")
    updated = repo.apply_status_event(
        claim_key,
        StatusEvent(event),
        datetime.fromisoformat(at) if at else datetime.now().replace(microsecond=0),
        claim.version if expected_version is None else expected_version,
        paid_amount=Decimal(paid_amount) if paid_amount else None,
        adjustment_amount=Decimal(adjustment_amount) if adjustment_amount else None,
    )
    console.print_status_history(claim_key, repo.get_status_history(claim_key))
    console.print_success(
        f"{claim_key} is now {updated.current_status.value} (version {updated.version})"
    )


def main() -> None:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        prog="revcycle", description="Claims revenue-cycle dataset engine"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show log output")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    gen = subparsers.add_parser("generate", help="Generate datasets for organizations")
    gen.add_argument("org_keys", nargs="+", metavar="ORG", help="Organization key(s)")
    gen.add_argument("--count", "-c", type=int, help="Claims per organization")
    gen.add_argument("--seed", "-s", type=int, help="Base seed for reproducible output")
    gen.add_argument("--db", help="Claims database path")
    gen.add_argument("--no-save", action="store_true", help="Don't save datasets to database")
    gen.add_argument("--output", "-o", help="Write the JSON bundle to this file")

    qry = subparsers.add_parser("query", help="Query stored claims")
    qry.add_argument("org_key", metavar="ORG", help="Organization key")
    qry.add_argument("--status", choices=[s.value for s in ClaimStatusCode])
    qry.add_argument("--department", help="Department name")
    qry.add_argument("--payer", help="Payer key")
    qry.add_argument("--from", dest="date_from", help="Service date from (YYYY-MM-DD)")
    qry.add_argument("--to", dest="date_to", help="Service date to (YYYY-MM-DD)")
    qry.add_argument("--db", help="Claims database path")

    stats_cmd = subparsers.add_parser("stats", help="Show stored dataset statistics")
    stats_cmd.add_argument("org_key", metavar="ORG", help="Organization key")
    stats_cmd.add_argument("--db", help="Claims database path")

    val = subparsers.add_parser("validate", help="Run reconciliation checks on a stored dataset")
    val.add_argument("org_key", metavar="ORG", help="Organization key")
    val.add_argument("--db", help="Claims database path")

    adv = subparsers.add_parser("advance", help="Apply a lifecycle event to a stored claim")
    adv.add_argument("claim_key", metavar="CLAIM_KEY", help="Claim key")
    adv.add_argument("event", metavar="EVENT", choices=[e.value for e in StatusEvent])
    adv.add_argument("--paid", help="New paid total (pay/settle)")
    adv.add_argument("--adjustment", help="New adjustment total (pay/settle)")
    adv.add_argument("--at", help="Event timestamp (ISO format), defaults to now")
    adv.add_argument("--expected-version", type=int, help="Fail if the claim changed since")
    adv.add_argument("--db", help="Claims database path")

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)
    console.verbose = args.verbose

    try:
        if args.command == "generate":
            asyncio.run(
                generate_datasets(
                    args.org_keys,
                    args.count,
                    args.seed,
                    not args.no_save,
                    args.db,
                    args.output,
                )
            )
        elif args.command == "query":
            asyncio.run(
                query_claims(
                    args.org_key,
                    args.status,
                    args.department,
                    args.payer,
                    args.date_from,
                    args.date_to,
                    args.db,
                )
            )
        elif args.command == "stats":
            asyncio.run(show_stats(args.org_key, args.db))
        elif args.command == "validate":
            if not asyncio.run(validate_dataset(args.org_key, args.db)):
                sys.exit(1)
        elif args.command == "advance":
            asyncio.run(
                advance_claim(
                    args.claim_key,
                    args.event,
                    args.paid,
                    args.adjustment,
                    args.at,
                    args.expected_version,
                    args.db,
                )
            )
    except KeyboardInterrupt:
        console.console.print("\n[yellow]Cancelled by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print_error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
