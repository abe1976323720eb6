"""Dataset access boundary for consumers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel

from revcycle.core.errors import DataUnavailableError, RevenueCycleError
from revcycle.core.models import ClaimsDataset  # noqa: TC001 - Pydantic needs at runtime
from revcycle.orchestrator.assembler import DatasetAssembler


if TYPE_CHECKING:
    from revcycle.storage.repository import ClaimsRepository

logger = logging.getLogger(__name__)


class DatasetResponse(BaseModel):
    """Result handed to consumers: a dataset, or an explicit unavailable state."""

    org_key: str
    available: bool
    dataset: ClaimsDataset | None = None
    error: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def unavailable(cls, org_key: str, error: str) -> DatasetResponse:
        return cls(org_key=org_key, available=False, error=error)


class DatasetService:
    """Serves datasets from storage or fresh generation.

    Consumers never receive a partial dataset: an aborted generation or a
    missing stored dataset becomes ``available=False`` with the reason.
    """

    def __init__(
        self,
        assembler: DatasetAssembler | None = None,
        repository: ClaimsRepository | None = None,
    ) -> None:
        self.assembler = assembler or DatasetAssembler()
        self.repository = repository

    def generate(
        self,
        org_key: str,
        claim_count: int | None = None,
        seed: int | None = None,
        save: bool = True,
    ) -> DatasetResponse:
        try:
            dataset = self.assembler.assemble(org_key, claim_count=claim_count, seed=seed)
        except RevenueCycleError as e:
            return DatasetResponse.unavailable(org_key, str(e))
        if save and self.repository is not None:
            self.repository.save_dataset(dataset)
        return DatasetResponse(org_key=org_key, available=True, dataset=dataset)

    def get_dataset(self, org_key: str) -> DatasetResponse:
        """Load a stored dataset, or generate one when no repository is configured."""
        if self.repository is None:
            return self.generate(org_key, save=False)
        try:
            return DatasetResponse(org_key=org_key, available=True, dataset=self.require(org_key))
        except RevenueCycleError as e:
            logger.warning("Dataset for %s unavailable: %s", org_key, e)
            return DatasetResponse.unavailable(org_key, str(e))

    def require(self, org_key: str) -> ClaimsDataset:
        """Return the stored dataset or raise ``DataUnavailableError``."""
        if self.repository is None:
            raise DataUnavailableError("No claims repository configured")
        dataset = self.repository.load_dataset(org_key)
        if dataset is None:
            raise DataUnavailableError(f"No dataset stored for organization {org_key}")
        return dataset
