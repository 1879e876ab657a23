"""In-memory ledger of captured receipts.

The ledger owns every ``ReceiptItem`` and is the only thing that replaces
them. Extraction and submission run as ``asyncio`` tasks owned by the ledger;
when a task finishes it hands its outcome back through
``apply_extraction_result`` / ``apply_submission_result``, which drop the
outcome unless the receipt still exists and is still waiting on that
operation. Removing a receipt therefore cancels nothing on the wire, but its
late result can never bring the receipt back.

All methods must be called from the event loop thread. None of them awaits
while touching the collection, so no locking is needed.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from src.exceptions import ConfigurationMissingError, ItemNotFoundError
from src.models.enums import Operation, ReceiptStatus
from src.models.receipt import (
    ReceiptItem,
    extraction_failed,
    extraction_retried,
    extraction_succeeded,
    new_receipt,
    submission_failed,
    submission_started,
    submission_succeeded,
)
from src.schemas.receipt import ExtractedReceipt
from src.schemas.settings import FormConfig
from src.services.config_store import ConfigStore
from src.services.extraction import ExtractionClient
from src.services.form_submission import SubmissionClient

logger = logging.getLogger(__name__)

MISSING_FORM_URL_MESSAGE = "Please configure your Google Form URL in settings first!"


class Ledger:
    """Ordered collection of receipts moving through the capture/submit lifecycle."""

    def __init__(
        self,
        config_store: ConfigStore,
        extraction_client: ExtractionClient,
        submission_client: SubmissionClient,
    ) -> None:
        self._config_store = config_store
        self._extractor = extraction_client
        self._submitter = submission_client
        # Insertion order is creation order; items() reverses it.
        self._items: dict[str, ReceiptItem] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    # --- Queries ---

    def get(self, item_id: str) -> ReceiptItem:
        """Get a receipt by id."""
        item = self._items.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def items(self) -> list[ReceiptItem]:
        """All receipts, newest first."""
        return list(reversed(self._items.values()))

    @property
    def pending_count(self) -> int:
        """Number of receipts not yet submitted."""
        return sum(1 for item in self._items.values() if item.status != ReceiptStatus.SUBMITTED)

    @property
    def in_flight(self) -> int:
        """Number of background operations still running."""
        return len(self._tasks)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    # --- Commands ---

    def create(self, image: str) -> str:
        """Add a captured receipt and start extracting its fields.

        Returns the new receipt's id without waiting for extraction.
        """
        loop = asyncio.get_running_loop()
        item = new_receipt(image)
        self._items[item.id] = item
        logger.info(f"Receipt {item.id} captured, extracting fields")
        self._spawn(loop, self._run_extraction(item.id, item.image), name=f"extract-{item.id}")
        return item.id

    def retry(self, item_id: str) -> ReceiptItem:
        """Re-run extraction for a failed receipt under the same id."""
        loop = asyncio.get_running_loop()
        item = extraction_retried(self.get(item_id))
        self._items[item_id] = item
        logger.info(f"Retrying extraction for receipt {item_id}")
        self._spawn(loop, self._run_extraction(item_id, item.image), name=f"extract-{item_id}")
        return item

    def begin_sync(self, item_id: str) -> ReceiptItem:
        """Start submitting a reviewed receipt to the configured form.

        Raises:
            ItemNotFoundError: no such receipt
            ConfigurationMissingError: no form URL is configured; nothing changes
            InvalidTransitionError: the receipt is not ready
        """
        loop = asyncio.get_running_loop()
        item = self.get(item_id)
        config = self._config_store.config
        if not config.is_configured:
            raise ConfigurationMissingError(MISSING_FORM_URL_MESSAGE)

        item = submission_started(item)
        self._items[item_id] = item
        logger.info(f"Submitting receipt {item_id}")
        self._spawn(loop, self._run_submission(item, config), name=f"submit-{item_id}")
        return item

    def remove(self, item_id: str) -> None:
        """Delete a receipt whatever its status.

        A running extraction or submission is left to finish; its result is discarded.
        """
        item = self._items.pop(item_id, None)
        if item is None:
            raise ItemNotFoundError(item_id)
        if not item.status.is_terminal():
            logger.info(f"Receipt {item_id} removed during {item.operation}; its result will be dropped")
        else:
            logger.info(f"Receipt {item_id} removed")

    # --- Background results ---

    def apply_extraction_result(self, item_id: str, result: ExtractedReceipt | BaseException) -> bool:
        """Record the outcome of an extraction.

        Returns False (and changes nothing) if the receipt was removed or is no
        longer waiting on extraction.
        """
        item = self._items.get(item_id)
        if item is None or not item.awaits(Operation.EXTRACTION):
            logger.debug(f"Dropping stale extraction result for receipt {item_id}")
            return False

        if isinstance(result, ExtractedReceipt):
            self._items[item_id] = extraction_succeeded(item, result.model_dump(exclude_none=True))
            logger.info(f"Receipt {item_id} ready: {result.merchant} {result.amount}")
        else:
            self._items[item_id] = extraction_failed(item)
            logger.warning(f"Extraction failed for receipt {item_id}: {result}")
        return True

    def apply_submission_result(self, item_id: str, success: bool) -> bool:
        """Record the outcome of a submission. Stale outcomes are dropped as above."""
        item = self._items.get(item_id)
        if item is None or not item.awaits(Operation.SUBMISSION):
            logger.debug(f"Dropping stale submission result for receipt {item_id}")
            return False

        if success:
            self._items[item_id] = submission_succeeded(item)
            logger.info(f"Receipt {item_id} submitted")
        else:
            self._items[item_id] = submission_failed(item)
            logger.warning(f"Submission failed for receipt {item_id}")
        return True

    # --- Task handling ---

    async def wait_idle(self) -> None:
        """Wait until no extraction or submission is running."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def aclose(self) -> None:
        """Let in-flight operations finish before shutdown."""
        if self._tasks:
            logger.info(f"Waiting for {len(self._tasks)} receipt operation(s) to finish")
        await self.wait_idle()

    def _spawn(self, loop: asyncio.AbstractEventLoop, coro: Coroutine[Any, Any, None], name: str) -> None:
        task = loop.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_extraction(self, item_id: str, image: str | None) -> None:
        outcome: ExtractedReceipt | BaseException
        try:
            outcome = await self._extractor.extract(image or "")
        except Exception as e:
            outcome = e
        self.apply_extraction_result(item_id, outcome)

    async def _run_submission(self, item: ReceiptItem, config: FormConfig) -> None:
        try:
            success = await self._submitter.submit(item, config)
        except Exception:
            logger.exception(f"Unexpected error submitting receipt {item.id}")
            success = False
        self.apply_submission_result(item.id, success)
