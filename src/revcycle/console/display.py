"""Display components for console output."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from revcycle.core.types import Severity


if TYPE_CHECKING:
    from rich.console import Console

    from revcycle.core.models import ClaimHeader, ClaimsDataset, ClaimStatusRecord
    from revcycle.validation.reconciliation import ReconciliationFinding

STATUS_COLORS = {
    "paid": "green",
    "processed": "cyan",
    "denied": "red",
    "pending": "yellow",
}
SEVERITY_COLORS = {Severity.HIGH: "red", Severity.MEDIUM: "yellow", Severity.LOW: "dim"}


def _status(value: str) -> str:
    color = STATUS_COLORS.get(value, "white")
    return f"[{color}]{value}[/{color}]"


def print_dataset_summary(console: Console, dataset: ClaimsDataset) -> None:
    """Print record counts and totals for a generated dataset."""
    summary = dataset.summary()
    console.print()
    table = Table(title=f"Dataset {dataset.org_key}", border_style="blue")
    table.add_column("Collection", style="bold")
    table.add_column("Records", justify="right")
    for name in ("claim_headers", "claim_lines", "claim_status", "remittance", "prior_auth", "eligibility"):
        table.add_row(name.replace("_", " ").title(), str(summary[name]))
    table.add_row("Seed", str(summary["seed"]))
    table.add_row("Total Charges", f"${summary['total_charges']:,.2f}")
    table.add_row("Total Paid", f"${summary['total_paid']:,.2f}")
    dropped = sum(summary["rejected"].values())
    if dropped:
        table.add_row("Dropped Records", f"[yellow]{dropped}[/yellow]")
    console.print(table)

    tree = Tree("[bold]Claims by Status[/bold]")
    for status, count in sorted(summary["by_status"].items()):
        tree.add(f"{_status(status)} ({count})")
    console.print(tree)


def print_claims_table(console: Console, claims: list[ClaimHeader]) -> None:
    """Print claim headers."""
    if not claims:
        console.print("  [yellow]⚠[/yellow] No claims match the query")
        return
    table = Table(title=f"Claims ({len(claims)})", border_style="dim")
    table.add_column("Claim", style="dim", width=18)
    table.add_column("Patient", width=20)
    table.add_column("Department", width=18)
    table.add_column("Payer", width=16)
    table.add_column("Service", width=10)
    table.add_column("Status", width=10)
    table.add_column("Charge", justify="right")
    table.add_column("Paid", justify="right")
    table.add_column("Ver", justify="right", width=3)
    for claim in claims:
        table.add_row(
            claim.claim_key,
            claim.patient_name,
            claim.department,
            claim.payer_key,
            claim.service_date_from.isoformat(),
            _status(claim.current_status.value),
            f"${claim.total_charge_amount:,.2f}",
            f"${claim.total_paid_amount:,.2f}",
            str(claim.version),
        )
    console.print(table)


def print_status_history(console: Console, claim_key: str, history: list[ClaimStatusRecord]) -> None:
    """Print a claim's status history as a tree."""
    tree = Tree(f"[bold]{claim_key}[/bold]")
    for record in history:
        branch = tree.add(
            f"{record.status_date:%Y-%m-%d %H:%M} {_status(record.status_code.value)} "
            f"[dim]{record.status_description}[/dim]"
        )
        if record.follow_up_required and record.follow_up_date:
            branch.add(f"[yellow]follow up by {record.follow_up_date:%Y-%m-%d}[/yellow]")
    console.print(tree)


def print_findings(console: Console, findings: list[ReconciliationFinding]) -> None:
    """Print reconciliation findings."""
    if not findings:
        console.print(
            Panel("[green]✓ All reconciliation checks passed[/green]", border_style="green")
        )
        return
    table = Table(title=f"Reconciliation Findings ({len(findings)})", border_style="dim")
    table.add_column("Severity", width=8)
    table.add_column("Check", width=24)
    table.add_column("Claim", style="dim", width=18)
    table.add_column("Detail")
    for finding in findings:
        color = SEVERITY_COLORS[finding.severity]
        table.add_row(
            f"[{color}]{finding.severity.value}[/{color}]",
            finding.check_name,
            finding.claim_key or "",
            finding.detail,
        )
    console.print(table)


def print_repository_stats(console: Console, stats: dict[str, Any]) -> None:
    """Print stored dataset statistics."""
    table = Table(title=f"Stored Dataset {stats['org_key']}", border_style="blue")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Seed", str(stats["seed"]))
    table.add_row("As Of", str(stats["as_of"]))
    for name in ("claim_headers", "claim_lines", "claim_status", "remittance", "prior_auth", "eligibility"):
        table.add_row(name.replace("_", " ").title(), str(stats[name]))
    for status, count in sorted(stats.get("by_status", {}).items()):
        table.add_row(f"  {status.title()}", str(count))
    table.add_row("Total Charges", f"${stats['total_charges']:,.2f}")
    table.add_row("Total Paid", f"${stats['total_paid']:,.2f}")
    console.print()
    console.print(table)
