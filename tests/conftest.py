"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import random
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from revcycle.config.catalogs import ReferenceCatalog, default_catalog
from revcycle.config.settings import GenerationSettings, ScenarioWeights, Settings
from revcycle.core.models import ClaimHeader, ClaimsDataset, PatientIdentity
from revcycle.generators.headers import ClaimHeaderFactory
from revcycle.generators.patients import PatientRosterBuilder
from revcycle.orchestrator.assembler import DatasetAssembler
from revcycle.storage.repository import ClaimsRepository


if TYPE_CHECKING:
    from collections.abc import Callable

AS_OF = date(2025, 1, 15)
SEED = 42


@pytest.fixture
def catalog() -> ReferenceCatalog:
    return default_catalog()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(SEED)


@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def settings() -> Settings:
    """Settings pinned to a fixed seed and reference date."""
    return Settings(generation=GenerationSettings(seed=SEED, as_of=AS_OF))


@pytest.fixture
def roster(rng: random.Random, catalog: ReferenceCatalog) -> list[PatientIdentity]:
    return PatientRosterBuilder(rng, catalog).build("ORG1", 10)


@pytest.fixture
def header_factory(
    rng: random.Random, catalog: ReferenceCatalog, settings: Settings
) -> ClaimHeaderFactory:
    return ClaimHeaderFactory(rng, catalog, settings.generation, settings.scenarios)


@pytest.fixture
def make_header(
    header_factory: ClaimHeaderFactory, roster: list[PatientIdentity]
) -> Callable[..., ClaimHeader]:
    """Build a header; keyword arguments are passed to ``ClaimHeaderFactory.build``."""
    sequence = iter(range(1, 10_000))

    def _make(**kwargs: Any) -> ClaimHeader:
        return header_factory.build("ORG1", next(sequence), roster[0], **kwargs)

    return _make


@pytest.fixture
def assembler(settings: Settings, catalog: ReferenceCatalog) -> DatasetAssembler:
    return DatasetAssembler(settings, catalog)


@pytest.fixture
def dataset(assembler: DatasetAssembler) -> ClaimsDataset:
    """Twenty claims for ORG1, the reference population."""
    return assembler.assemble("ORG1", claim_count=20)


@pytest.fixture
def pending_dataset(catalog: ReferenceCatalog) -> ClaimsDataset:
    """Dataset where every claim is pending, for live status progression."""
    settings = Settings(
        generation=GenerationSettings(seed=SEED, as_of=AS_OF),
        scenarios=ScenarioWeights(paid=0.0, partially_paid=0.0, denied=0.0, pending=1.0),
    )
    return DatasetAssembler(settings, catalog).assemble("ORG2", claim_count=5)


@pytest.fixture
def repository(tmp_path: Path, catalog: ReferenceCatalog) -> ClaimsRepository:
    return ClaimsRepository(tmp_path / "claims.db", catalog)
