"""AppSetting model: a small key-value table for persisted settings."""

from sqlalchemy import Column, String, Text

from src.database import Base
from src.models.mixins import TimestampMixin


class AppSetting(Base, TimestampMixin):
    """A persisted setting; ``value`` holds the JSON-encoded document."""

    __tablename__ = "app_settings"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
