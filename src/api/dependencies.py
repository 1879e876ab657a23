"""FastAPI dependencies for the receipt ledger and configuration."""

from fastapi import Request

from src.services.config_store import ConfigStore
from src.services.ledger import Ledger


def get_ledger(request: Request) -> Ledger:
    """Get the application's receipt ledger."""
    return request.app.state.ledger


def get_config_store(request: Request) -> ConfigStore:
    """Get the application's form configuration store."""
    return request.app.state.config_store
