"""Receipt schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import Operation, ReceiptStatus
from src.models.receipt import ReceiptItem


class ExtractedReceipt(BaseModel):
    """Fields read off a receipt image by the extraction model.

    ``merchant``, ``amount`` and ``date`` are required; models often omit the
    currency or category, in which case the receipt keeps its placeholders.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore", str_strip_whitespace=True)

    merchant: str
    amount: str
    date: str
    currency: str | None = None
    category: str | None = None


class CaptureRequest(BaseModel):
    """A camera frame captured in the browser, as a data URL."""

    image: str = Field(..., min_length=1, description="data:<mime>;base64,<payload>")


class ReceiptResponse(BaseModel):
    """Receipt response. The image payload is served separately."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    merchant: str
    amount: str
    currency: str
    date: str
    category: str
    status: ReceiptStatus
    error: str | None = None
    operation: Operation | None = None
    has_image: bool
    created_at: datetime

    @classmethod
    def from_item(cls, item: ReceiptItem) -> "ReceiptResponse":
        return cls.model_validate(item)


class ReceiptListResponse(BaseModel):
    """All receipts, newest first, with the count still to be submitted."""

    items: list[ReceiptResponse]
    pending_count: int
