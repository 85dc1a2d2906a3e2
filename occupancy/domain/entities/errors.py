"""
Domain Errors

This module defines the exception hierarchy shared by the repair engine,
the analytics engine and the forecasting pipeline.
"""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for domain errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DataAccessError(DomainError):
    """Raised when the record store or the schedule cannot be read or written."""


class ValidationError(DomainError):
    """Raised when a request is rejected before any work is done."""


class RepairValidationError(ValidationError):
    """Raised when a repair range is invalid (e.g. start after end)."""


class InsufficientDataError(DomainError):
    """Raised when an operation needs more samples than were supplied."""

    def __init__(
        self,
        available: int,
        required: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.available = available
        self.required = required
        if required is None:
            message = f"Insufficient data for training: {available} samples"
        else:
            message = (
                f"Insufficient data for training: {available} samples "
                f"(need at least {required})"
            )
        super().__init__(message, details)


class ComputationError(DomainError):
    """Raised when a numeric computation cannot be carried out."""


class MismatchedLengthsError(ComputationError):
    """Raised when feature and target sequences differ in length."""

    def __init__(self, features: int, targets: int):
        self.features = features
        self.targets = targets
        super().__init__(
            f"Feature and target lengths mismatch: {features} vs {targets}",
            details={"features": features, "targets": targets},
        )


class SingularMatrixError(ComputationError):
    """Raised when the regression design matrix is not of full rank."""


class PersistenceError(DomainError):
    """Base class for model snapshot persistence failures."""


class SnapshotNotFoundError(PersistenceError):
    """Raised when a snapshot file does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Model file not found: {path}", details={"path": path})


class SnapshotVersionError(PersistenceError):
    """Raised when a snapshot was written by a newer format version."""

    def __init__(self, expected: int, found: int):
        self.expected = expected
        self.found = found
        super().__init__(
            f"Model version mismatch: expected <= {expected}, found {found}",
            details={"expected": expected, "found": found},
        )


class SnapshotFormatError(PersistenceError):
    """Raised when a snapshot cannot be serialized or deserialized."""
