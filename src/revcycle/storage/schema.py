"""Database schema for the claims repository.

Each table keeps the columns used for filtering and concurrency control next to
a ``data`` column holding the record's JSON. Money values are serialized as
decimal strings, never as floats.
"""

from __future__ import annotations


INIT_SCHEMA = """
-- One row per generated organization dataset
CREATE TABLE IF NOT EXISTS datasets (
    org_key TEXT PRIMARY KEY,
    seed INTEGER NOT NULL,
    as_of DATE NOT NULL,
    generated_at TIMESTAMP NOT NULL,
    rejected TEXT NOT NULL DEFAULT '{}',
    saved_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS claim_headers (
    claim_key TEXT PRIMARY KEY,
    org_key TEXT NOT NULL,
    payer_key TEXT NOT NULL,
    department TEXT NOT NULL,
    current_status TEXT NOT NULL,
    service_date_from DATE NOT NULL,
    total_charge_amount TEXT NOT NULL,
    total_paid_amount TEXT NOT NULL,
    version INTEGER NOT NULL DEFAULT 0,
    data TEXT NOT NULL,
    FOREIGN KEY (org_key) REFERENCES datasets(org_key) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS claim_lines (
    line_key TEXT PRIMARY KEY,
    claim_key TEXT NOT NULL,
    org_key TEXT NOT NULL,
    line_number INTEGER NOT NULL,
    data TEXT NOT NULL,
    FOREIGN KEY (claim_key) REFERENCES claim_headers(claim_key) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS claim_status (
    status_key TEXT PRIMARY KEY,
    claim_key TEXT NOT NULL,
    org_key TEXT NOT NULL,
    sequence INTEGER NOT NULL,
    status_code TEXT NOT NULL,
    data TEXT NOT NULL,
    UNIQUE (claim_key, sequence),
    FOREIGN KEY (claim_key) REFERENCES claim_headers(claim_key) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS remittance (
    remittance_key TEXT PRIMARY KEY,
    claim_key TEXT NOT NULL UNIQUE,
    org_key TEXT NOT NULL,
    data TEXT NOT NULL,
    FOREIGN KEY (claim_key) REFERENCES claim_headers(claim_key) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS prior_auth (
    auth_key TEXT PRIMARY KEY,
    org_key TEXT NOT NULL,
    auth_number TEXT,
    auth_status TEXT NOT NULL,
    patient_id TEXT NOT NULL,
    data TEXT NOT NULL,
    FOREIGN KEY (org_key) REFERENCES datasets(org_key) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS eligibility (
    eligibility_key TEXT PRIMARY KEY,
    org_key TEXT NOT NULL,
    patient_id TEXT NOT NULL,
    verification_status TEXT NOT NULL,
    data TEXT NOT NULL,
    FOREIGN KEY (org_key) REFERENCES datasets(org_key) ON DELETE CASCADE
);

-- Indexes
CREATE INDEX IF NOT EXISTS idx_headers_org_status ON claim_headers(org_key, current_status);
CREATE INDEX IF NOT EXISTS idx_headers_org_service ON claim_headers(org_key, service_date_from);
CREATE INDEX IF NOT EXISTS idx_headers_payer ON claim_headers(payer_key);
CREATE INDEX IF NOT EXISTS idx_lines_claim ON claim_lines(claim_key);
CREATE INDEX IF NOT EXISTS idx_status_claim ON claim_status(claim_key);
CREATE INDEX IF NOT EXISTS idx_status_org ON claim_status(org_key);
CREATE INDEX IF NOT EXISTS idx_remittance_org ON remittance(org_key);
CREATE INDEX IF NOT EXISTS idx_prior_auth_org ON prior_auth(org_key, auth_status);
CREATE INDEX IF NOT EXISTS idx_eligibility_org ON eligibility(org_key, verification_status);
"""
