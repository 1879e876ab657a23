"""Domain and SQLAlchemy models."""

from src.models.app_setting import AppSetting
from src.models.enums import Operation, ReceiptStatus
from src.models.receipt import ReceiptItem

__all__ = [
    "AppSetting",
    "Operation",
    "ReceiptItem",
    "ReceiptStatus",
]
