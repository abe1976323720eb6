"""Reconciliation checks across dataset collections."""

from revcycle.validation.reconciliation import (
    ReconciliationFinding,
    run_reconciliation_checks,
)

__all__ = ["ReconciliationFinding", "run_reconciliation_checks"]
