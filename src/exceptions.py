"""Exceptions raised by the receipt services."""


class PayTrackError(Exception):
    """Base class for application errors."""


class ItemNotFoundError(PayTrackError, LookupError):
    """No receipt with the given id is in the ledger."""

    def __init__(self, item_id: str) -> None:
        super().__init__(f"Receipt {item_id} not found")
        self.item_id = item_id


class InvalidTransitionError(PayTrackError, ValueError):
    """An event was applied to a receipt in a state that does not accept it."""

    def __init__(self, event: str, status: str) -> None:
        super().__init__(f"Cannot apply '{event}' to a receipt with status '{status}'")
        self.event = event
        self.status = status


class ConfigurationMissingError(PayTrackError):
    """Sync was attempted without a form URL configured."""


class ExtractionError(PayTrackError):
    """The extraction backend failed or returned an unusable result."""
