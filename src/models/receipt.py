"""Receipt item and its lifecycle transitions.

A ``ReceiptItem`` is immutable. Every change of state goes through one of the
transition functions below, each of which checks that the event is legal for
the item's current status and returns a new item. Anything else raises
``InvalidTransitionError``, so e.g. submitting a receipt that is still being
extracted cannot happen.

    new_receipt ──> processing/extraction ──> ready ──> processing/submission ──> submitted
                          │                                  │
                          └──────────> error <───────────────┘
                                         │
                     extraction_retried ─┘ (back to processing/extraction)
"""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from src.exceptions import InvalidTransitionError
from src.models.enums import Operation, ReceiptStatus

PLACEHOLDER_MERCHANT = "Identifying..."
PLACEHOLDER_AMOUNT = "..."
PLACEHOLDER_CURRENCY = ""
PLACEHOLDER_CATEGORY = "Uncategorized"

EXTRACTION_FAILED_MESSAGE = "Failed to process image"
SUBMISSION_FAILED_MESSAGE = "Upload failed"

EXTRACTED_FIELDS = ("merchant", "amount", "currency", "date", "category")


@dataclass(frozen=True)
class ReceiptItem:
    """One captured receipt and where it is in the lifecycle."""

    id: str
    image: str | None
    merchant: str = PLACEHOLDER_MERCHANT
    amount: str = PLACEHOLDER_AMOUNT
    currency: str = PLACEHOLDER_CURRENCY
    date: str = field(default_factory=lambda: datetime.now().date().isoformat())
    category: str = PLACEHOLDER_CATEGORY
    status: ReceiptStatus = ReceiptStatus.PROCESSING
    error: str | None = None
    operation: Operation | None = Operation.EXTRACTION
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def awaits(self, operation: Operation) -> bool:
        """Check if this item is still waiting for the given operation's result."""
        return self.status == ReceiptStatus.PROCESSING and self.operation == operation

    @property
    def has_image(self) -> bool:
        return bool(self.image)


def new_receipt(image: str) -> ReceiptItem:
    """Create a receipt with placeholder fields, waiting on extraction."""
    if not image:
        raise ValueError("A receipt needs an image")
    return ReceiptItem(id=uuid.uuid4().hex, image=image)


def _require(item: ReceiptItem, event: str, ok: bool) -> None:
    if not ok:
        raise InvalidTransitionError(event, item.status)


def extraction_succeeded(item: ReceiptItem, fields: Mapping[str, str | None]) -> ReceiptItem:
    """Apply extracted fields. Fields missing from the result keep their current value."""
    _require(item, "extraction_succeeded", item.awaits(Operation.EXTRACTION))
    updates = {
        name: value for name, value in fields.items() if name in EXTRACTED_FIELDS and value is not None
    }
    return replace(item, **updates, status=ReceiptStatus.READY, error=None, operation=None)


def extraction_failed(item: ReceiptItem, cause: str = EXTRACTION_FAILED_MESSAGE) -> ReceiptItem:
    _require(item, "extraction_failed", item.awaits(Operation.EXTRACTION))
    return replace(item, status=ReceiptStatus.ERROR, error=cause, operation=None)


def submission_started(item: ReceiptItem) -> ReceiptItem:
    """Only a reviewed (ready) receipt can be sent to the form."""
    _require(item, "submission_started", item.status == ReceiptStatus.READY)
    return replace(item, status=ReceiptStatus.PROCESSING, operation=Operation.SUBMISSION)


def submission_succeeded(item: ReceiptItem) -> ReceiptItem:
    _require(item, "submission_succeeded", item.awaits(Operation.SUBMISSION))
    return replace(item, status=ReceiptStatus.SUBMITTED, operation=None)


def submission_failed(item: ReceiptItem, cause: str = SUBMISSION_FAILED_MESSAGE) -> ReceiptItem:
    _require(item, "submission_failed", item.awaits(Operation.SUBMISSION))
    return replace(item, status=ReceiptStatus.ERROR, error=cause, operation=None)


def extraction_retried(item: ReceiptItem) -> ReceiptItem:
    """Re-run extraction on a failed receipt, keeping its id and image."""
    _require(item, "extraction_retried", item.status == ReceiptStatus.ERROR and item.has_image)
    return replace(item, status=ReceiptStatus.PROCESSING, error=None, operation=Operation.EXTRACTION)
