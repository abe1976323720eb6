"""Console output and logging setup for the CLI."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.text import Text

from revcycle.console.display import (
    print_claims_table,
    print_dataset_summary,
    print_findings,
    print_repository_stats,
    print_status_history,
)


if TYPE_CHECKING:
    from collections.abc import Iterator

    from revcycle.core.models import ClaimHeader, ClaimsDataset, ClaimStatusRecord
    from revcycle.validation.reconciliation import ReconciliationFinding


class GenerationConsole:
    """Rich console interface for dataset generation and queries."""

    def __init__(self, verbose: bool = False) -> None:
        self.console = Console()
        self.verbose = verbose

    def setup_logging(self, level: str = "INFO") -> None:
        logging.basicConfig(
            level=level if self.verbose else "WARNING",
            format="%(message)s",
            handlers=[
                RichHandler(
                    console=self.console, rich_tracebacks=True, show_time=False, show_path=False
                )
            ],
            force=True,
        )

    def print_header(self, org_key: str, detail: str) -> None:
        header = Text()
        header.append("revcycle", style="bold blue")
        header.append(" - Claims Revenue-Cycle Datasets\n\n", style="dim")
        header.append("Organization: ", style="bold")
        header.append(f"{org_key}\n", style="green")
        header.append(detail, style="dim")
        self.console.print(Panel(header, border_style="blue"))

    @contextmanager
    def generation_progress(self) -> Iterator[Progress]:
        progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
            expand=False,
        )
        with progress:
            yield progress

    def print_dataset_summary(self, dataset: ClaimsDataset) -> None:
        print_dataset_summary(self.console, dataset)

    def print_claims(self, claims: list[ClaimHeader]) -> None:
        print_claims_table(self.console, claims)

    def print_status_history(self, claim_key: str, history: list[ClaimStatusRecord]) -> None:
        print_status_history(self.console, claim_key, history)

    def print_findings(self, findings: list[ReconciliationFinding]) -> None:
        print_findings(self.console, findings)

    def print_stats(self, stats: dict[str, Any]) -> None:
        print_repository_stats(self.console, stats)

    def print_success(self, message: str) -> None:
        self.console.print()
        self.console.print(
            Panel(f"[green]✓ {message}[/green]", title="[green]Complete[/green]", border_style="green")
        )

    def print_error(self, error: str) -> None:
        self.console.print()
        self.console.print(
            Panel(f"[red]{error}[/red]", title="[red]Error[/red]", border_style="red")
        )
