"""
Exception types for StepFour.
"""

from typing import Sequence


class StepFourError(Exception):
    """Base class for all StepFour errors."""


class ValidationError(StepFourError):
    """A draft is missing one or more required fields."""

    def __init__(self, missing_fields: Sequence[str]):
        self.missing_fields = tuple(missing_fields)
        super().__init__(f"Missing required field(s): {', '.join(self.missing_fields)}")


class StorageError(StepFourError):
    """Durable storage could not be read or written."""


class StoreClosedError(StepFourError):
    """Operation attempted on an entry store that is not open."""
