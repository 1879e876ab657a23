"""Pydantic schemas for API requests and responses."""

from src.schemas.receipt import (
    CaptureRequest,
    ExtractedReceipt,
    ReceiptListResponse,
    ReceiptResponse,
)
from src.schemas.settings import DEFAULT_CONFIG, FormConfig

__all__ = [
    "CaptureRequest",
    "ExtractedReceipt",
    "ReceiptListResponse",
    "ReceiptResponse",
    "FormConfig",
    "DEFAULT_CONFIG",
]
