"""Form configuration schemas."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_FORM_URL = (
    "https://docs.google.com/forms/d/e/"
    "1FAIpQLScBqSPn8KeJNhhRkTUHMUdv4OrVptYXQMNgQqoAsPN5MUJSKQ/viewform"
)


class FormConfig(BaseModel):
    """Where receipts are submitted and which form entries receive each field."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    form_url: str = Field(default=DEFAULT_FORM_URL, max_length=2048)
    amount_entry_id: str = Field(default="entry.527204928", max_length=100)  # expense amount in LKR
    type_entry_id: str = Field(default="entry.183344116", max_length=100)  # type of expense
    method_entry_id: str = Field(default="entry.2064509286", max_length=100)  # Cash (bill), Card

    @property
    def is_configured(self) -> bool:
        """Check if a submission target has been set."""
        return bool(self.form_url.strip())


DEFAULT_CONFIG = FormConfig()
