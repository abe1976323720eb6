"""Reference code tables injected into every generator.

The built-in tables are a small, realistic sample. ``ReferenceCatalog.from_json``
loads a replacement from a code-table export with the same field names.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, model_validator

from revcycle.core.errors import MalformedInputError


class CodeEntry(BaseModel):
    """A code with its human-readable description."""

    code: str
    description: str

    model_config = {"frozen": True}


def _entries(*pairs: tuple[str, str]) -> tuple[CodeEntry, ...]:
    return tuple(CodeEntry(code=code, description=desc) for code, desc in pairs)


PROCEDURE_CODES = _entries(
    ("99213", "Office visit, established patient, moderate complexity"),
    ("99214", "Office visit, established patient, high complexity"),
    ("99232", "Hospital inpatient care, subsequent"),
    ("99291", "Critical care, first hour"),
    ("71020", "Chest X-ray, frontal view"),
    ("80053", "Comprehensive metabolic panel"),
    ("85025", "Complete blood count with differential"),
    ("93000", "Electrocardiogram, routine"),
    ("29881", "Arthroscopy, knee, surgical"),
    ("47562", "Laparoscopic cholecystectomy"),
    ("99202", "New patient office visit, straightforward"),
    ("99233", "Hospital inpatient care, high complexity"),
    ("76700", "Ultrasound, abdominal, complete"),
    ("45378", "Colonoscopy, diagnostic"),
    ("20610", "Arthrocentesis, major joint"),
)

AUTH_PROCEDURE_CODES = _entries(
    ("29881", "Arthroscopy, knee, surgical"),
    ("47562", "Laparoscopic cholecystectomy"),
    ("76700", "Ultrasound, abdominal, complete"),
    ("45378", "Colonoscopy, diagnostic"),
    ("99232", "Hospital inpatient care, subsequent"),
)

DIAGNOSIS_CODES = _entries(
    ("Z00.00", "Encounter for general adult medical examination"),
    ("I10", "Essential hypertension"),
    ("E11.9", "Type 2 diabetes mellitus without complications"),
    ("M79.3", "Panniculitis, unspecified"),
    ("J44.0", "Chronic obstructive pulmonary disease with acute lower respiratory infection"),
    ("N39.0", "Urinary tract infection, site not specified"),
    ("K21.9", "Gastro-esophageal reflux disease without esophagitis"),
    ("M25.511", "Pain in right shoulder"),
    ("R06.02", "Shortness of breath"),
    ("I25.10", "Atherosclerotic heart disease of native coronary artery without angina pectoris"),
)

DENIAL_REASONS = _entries(
    ("CO-11", "The diagnosis is inconsistent with the procedure"),
    ("CO-16", "Claim/service lacks information or has submission/billing error"),
    ("CO-18", "Duplicate claim/service"),
    ("CO-27", "Expenses incurred after coverage terminated"),
    ("CO-29", "The time limit for filing has expired"),
    ("CO-50", "These are non-covered services"),
    ("CO-96", "Non-covered charge(s)"),
    ("CO-197", "Precertification/authorization/notification absent"),
)

REMARK_CODES = _entries(
    ("N1", "Alert: You may appeal this decision"),
    ("N2", "This allowance has been made in accordance with the most appropriate course of treatment"),
    ("N3", "Missing consent form"),
)

ADJUSTMENT_REASONS = _entries(
    ("45", "Charge exceeds fee schedule/maximum allowable"),
    ("96", "Non-covered charge(s)"),
    ("1", "Deductible amount"),
    ("2", "Coinsurance amount"),
)

REVENUE_CODES = _entries(
    ("0450", "Emergency Room"),
    ("0636", "Drugs requiring detailed coding"),
    ("0730", "EKG/ECG"),
    ("0320", "Radiology - diagnostic"),
    ("0250", "Pharmacy"),
    ("0300", "Laboratory"),
    ("0410", "Occupational therapy"),
    ("0420", "Physical therapy"),
    ("0200", "Intensive care"),
    ("0110", "Room and board - private"),
)

CLEARINGHOUSES = (
    "Change Healthcare",
    "Availity",
    "Trizetto",
    "Optum",
    "TriZetto Gateway",
    "Office Ally",
)

PAYER_KEYS = (
    "PAY-AETNA-001",
    "PAY-BCBS-001",
    "PAY-UHC-001",
    "PAY-CIGNA-001",
    "PAY-HUMANA-001",
    "PAY-MEDICARE-001",
)

PLAN_NAMES = (
    "HMO Gold Plus",
    "PPO Select",
    "EPO Advantage",
    "Medicare Advantage",
    "Medicaid Managed Care",
    "High Deductible Plan",
)

DEPARTMENTS = (
    "Emergency",
    "Cardiology",
    "Orthopedics",
    "Radiology",
    "Internal Medicine",
    "General Surgery",
    "Laboratory",
)

MODIFIERS = ("25", "26", "TC", "LT", "RT")

AUTH_DENIAL_REASONS = (
    "Medical necessity not established",
    "Insufficient clinical documentation",
    "Service not covered under plan",
    "Out-of-network provider",
)

PATIENT_NAMES = (
    "Smith, John", "Johnson, Mary", "Williams, Robert", "Brown, Linda",
    "Davis, Michael", "Miller, Elizabeth", "Wilson, David", "Moore, Susan",
    "Taylor, James", "Anderson, Patricia", "Thomas, Christopher", "Jackson, Nancy",
    "White, Matthew", "Harris, Lisa", "Martin, Daniel", "Thompson, Karen",
    "Garcia, Anthony", "Martinez, Betty", "Robinson, Mark", "Clark, Helen",
)

PROVIDER_SURNAMES = ("Smith", "Johnson", "Williams", "Brown", "Davis")


class ReferenceCatalog(BaseModel):
    """Read-only lookup tables used by the generators."""

    procedure_codes: tuple[CodeEntry, ...] = PROCEDURE_CODES
    auth_procedure_codes: tuple[CodeEntry, ...] = AUTH_PROCEDURE_CODES
    diagnosis_codes: tuple[CodeEntry, ...] = DIAGNOSIS_CODES
    denial_reasons: tuple[CodeEntry, ...] = DENIAL_REASONS
    remark_codes: tuple[CodeEntry, ...] = REMARK_CODES
    adjustment_reasons: tuple[CodeEntry, ...] = ADJUSTMENT_REASONS
    revenue_codes: tuple[CodeEntry, ...] = REVENUE_CODES
    clearinghouses: tuple[str, ...] = CLEARINGHOUSES
    payer_keys: tuple[str, ...] = PAYER_KEYS
    plan_names: tuple[str, ...] = PLAN_NAMES
    departments: tuple[str, ...] = DEPARTMENTS
    modifiers: tuple[str, ...] = MODIFIERS
    auth_denial_reasons: tuple[str, ...] = AUTH_DENIAL_REASONS
    patient_names: tuple[str, ...] = PATIENT_NAMES
    provider_surnames: tuple[str, ...] = PROVIDER_SURNAMES

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _no_empty_tables(self) -> ReferenceCatalog:
        empty = [
            name
            for name, value in self
            if isinstance(value, tuple) and not value
        ]
        if empty:
            raise MalformedInputError(f"Catalog tables must not be empty: {', '.join(empty)}")
        return self

    @classmethod
    def from_json(cls, path: str | Path) -> ReferenceCatalog:
        """Load a catalog from a JSON file; missing tables keep their defaults."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.model_validate(data)


def default_catalog() -> ReferenceCatalog:
    return ReferenceCatalog()
