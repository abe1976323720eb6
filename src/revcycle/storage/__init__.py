"""Storage layer for generated claim datasets."""

from revcycle.storage.repository import ClaimsRepository

__all__ = ["ClaimsRepository"]
