"""Form configuration API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.dependencies import get_config_store
from src.schemas.settings import FormConfig
from src.services.config_store import ConfigStore

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


@router.get("", response_model=FormConfig)
def get_form_config(config_store: Annotated[ConfigStore, Depends(get_config_store)]):
    """Get the current form configuration."""
    return config_store.config


@router.put("", response_model=FormConfig)
def save_form_config(
    config: FormConfig,
    config_store: Annotated[ConfigStore, Depends(get_config_store)],
):
    """Replace the form configuration and persist it.

    The whole configuration is overwritten; fields left out of the request
    fall back to their defaults rather than keeping the previous values.
    """
    return config_store.save(config)
