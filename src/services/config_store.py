"""Persisted form configuration."""

import logging

from pydantic import ValidationError
from sqlalchemy.orm import Session, sessionmaker

from src.models.app_setting import AppSetting
from src.schemas.settings import DEFAULT_CONFIG, FormConfig

logger = logging.getLogger(__name__)

CONFIG_KEY = "config"


class ConfigStore:
    """Holds the form configuration in memory and writes it through on save.

    The store is loaded once at startup. Reads never touch the database;
    ``save`` overwrites the persisted document in full and only then swaps the
    in-memory value, so readers see either the old or the new config.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._config: FormConfig = DEFAULT_CONFIG

    @property
    def config(self) -> FormConfig:
        """The current configuration."""
        return self._config

    def load(self) -> FormConfig:
        """Read the persisted configuration, falling back to the built-in default."""
        with self._session_factory() as db:
            row = db.get(AppSetting, CONFIG_KEY)
            raw = row.value if row else None

        if raw is None:
            logger.info("No saved form configuration, using defaults")
            self._config = DEFAULT_CONFIG
            return self._config

        try:
            self._config = FormConfig.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Saved form configuration is unreadable, using defaults: {e}")
            self._config = DEFAULT_CONFIG
        return self._config

    def save(self, config: FormConfig) -> FormConfig:
        """Persist ``config`` (replacing whatever was saved) and make it current."""
        payload = config.model_dump_json(by_alias=True)
        with self._session_factory() as db:
            row = db.get(AppSetting, CONFIG_KEY)
            if row is None:
                db.add(AppSetting(key=CONFIG_KEY, value=payload))
            else:
                row.value = payload
            db.commit()

        self._config = config
        logger.info(f"Saved form configuration (form_url={config.form_url!r})")
        return config
