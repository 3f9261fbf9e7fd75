"""Error types for grocery list operations."""

from typing import Optional


class GroceryListError(Exception):
    """Base exception for grocery list errors."""
    pass


class ReferenceDataUnavailable(GroceryListError):
    """Unit profile reference data could not be read."""
    pass


class PersistenceFailure(GroceryListError):
    """A grocery list write failed before any write in its batch was applied."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class PartialBatchFailure(PersistenceFailure):
    """A write failed after earlier writes in the same batch were applied.

    Applied writes are not rolled back. The list reconciles on the next
    full read.
    """

    def __init__(self, message: str, operation: Optional[str] = None, applied: int = 0):
        super().__init__(message, operation=operation)
        self.applied = applied
