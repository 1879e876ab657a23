"""Google Form submission for reviewed receipts."""

import logging
import re
from urllib.parse import urlencode

import httpx

from src.models.receipt import ReceiptItem
from src.schemas.settings import FormConfig

logger = logging.getLogger(__name__)

_VIEWFORM_SUFFIX_RE = re.compile(r"/viewform.*$")


def form_response_url(form_url: str) -> str:
    """Turn a form's public URL into its submission endpoint.

    ``.../viewform?usp=sf_link`` becomes ``.../formResponse``. A URL that already
    points at ``formResponse``, or that has no ``viewform`` suffix, is used as-is.
    """
    if "formResponse" in form_url:
        return form_url
    return _VIEWFORM_SUFFIX_RE.sub("/formResponse", form_url)


def payment_method(category: str) -> str:
    """Guess the payment method from the receipt's category."""
    return "Cash" if "cash" in category.lower() else "Card"


def build_form_data(receipt: ReceiptItem, config: FormConfig) -> list[tuple[str, str]]:
    """Map receipt fields onto the configured form entries.

    Pairs rather than a dict, so all three are sent even if two entry ids coincide.
    """
    return [
        (config.amount_entry_id, receipt.amount),
        (config.type_entry_id, receipt.merchant),
        (config.method_entry_id, payment_method(receipt.category)),
    ]


class SubmissionClient:
    """Posts receipts to a Google Form.

    The form endpoint does not tell us whether the response was recorded, so a
    submission counts as successful when the HTTP exchange completes; only
    transport errors are reported as failures.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self._transport = transport

    async def submit(self, receipt: ReceiptItem, config: FormConfig) -> bool:
        """Submit one receipt. Returns False on a missing form URL or transport error."""
        if not config.is_configured:
            return False

        url = form_response_url(config.form_url)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    url,
                    content=urlencode(build_form_data(receipt, config)),
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Submission of receipt {receipt.id} failed: {e}")
            return False

        logger.debug(f"Submitted receipt {receipt.id} to {url} (HTTP {response.status_code}, not verified)")
        return True
