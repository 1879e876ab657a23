"""Enums for receipt lifecycle fields."""

from enum import StrEnum


class ReceiptStatus(StrEnum):
    """Lifecycle status of a captured receipt."""

    PENDING = "pending"  # reserved for an "awaiting capture confirmation" step; never assigned
    PROCESSING = "processing"
    READY = "ready"
    SUBMITTED = "submitted"
    ERROR = "error"

    def is_terminal(self) -> bool:
        """Check if no background operation can still be running for this status."""
        return self in (ReceiptStatus.READY, ReceiptStatus.SUBMITTED, ReceiptStatus.ERROR)


class Operation(StrEnum):
    """Background operation a processing receipt is waiting on."""

    EXTRACTION = "extraction"
    SUBMISSION = "submission"
