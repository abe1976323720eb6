"""Exception hierarchy for dataset generation and storage.

Model validators raise these directly rather than ``ValueError`` so pydantic
lets them propagate unwrapped to the caller.
"""

from __future__ import annotations


class RevenueCycleError(Exception):
    """Base class for all revcycle errors."""


class InvariantViolationError(RevenueCycleError):
    """A record or record set breaks a financial or temporal invariant."""


class MalformedInputError(RevenueCycleError):
    """Generation was requested with unusable parameters."""


class ReferentialIntegrityError(RevenueCycleError):
    """A record references a key that does not exist in its dataset."""


class InvalidTransitionError(InvariantViolationError):
    """A status event is not allowed from the claim's current state."""


class ConcurrentModificationError(RevenueCycleError):
    """A stored claim changed since the caller last read it."""


class DataUnavailableError(RevenueCycleError):
    """No dataset could be produced or found for an organization."""
