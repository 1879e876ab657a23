"""Receipt API endpoints.

Every endpoint here is ``async`` so that the ledger is only ever touched from
the event loop thread.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response

from src.api.dependencies import get_ledger
from src.config import get_settings
from src.exceptions import ConfigurationMissingError, InvalidTransitionError, ItemNotFoundError
from src.schemas.receipt import CaptureRequest, ReceiptListResponse, ReceiptResponse
from src.services.extraction import decode_image, to_data_url
from src.services.ledger import Ledger

router = APIRouter(prefix="/api/v1/receipts", tags=["receipts"])

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receipt not found")


def _conflict(e: InvalidTransitionError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


def _check_size(size: int) -> None:
    max_bytes = get_settings().max_upload_bytes
    if size > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.",
        )


@router.get("", response_model=ReceiptListResponse)
async def list_receipts(ledger: Annotated[Ledger, Depends(get_ledger)]):
    """List all receipts, newest first."""
    return ReceiptListResponse(
        items=[ReceiptResponse.from_item(item) for item in ledger.items()],
        pending_count=ledger.pending_count,
    )


@router.post("", response_model=ReceiptResponse, status_code=status.HTTP_201_CREATED)
async def upload_receipt(
    file: Annotated[UploadFile, File(description="Receipt image (JPEG, PNG, GIF, or WebP)")],
    ledger: Annotated[Ledger, Depends(get_ledger)],
):
    """Upload a receipt image from the file picker.

    Fields are extracted in the background; poll the receipt to see when it is ready.
    """
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type. Allowed types: {', '.join(sorted(ALLOWED_IMAGE_TYPES))}",
        )

    image_data = await file.read()
    if not image_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file")
    _check_size(len(image_data))

    item_id = ledger.create(to_data_url(image_data, file.content_type))
    return ReceiptResponse.from_item(ledger.get(item_id))


@router.post("/capture", response_model=ReceiptResponse, status_code=status.HTTP_201_CREATED)
async def capture_receipt(
    request: CaptureRequest,
    ledger: Annotated[Ledger, Depends(get_ledger)],
):
    """Submit a camera frame captured in the browser as a data URL."""
    try:
        media_type, image_data = decode_image(request.image)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None

    if media_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid image type: {media_type}",
        )
    if not image_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty image")
    _check_size(len(image_data))

    item_id = ledger.create(to_data_url(image_data, media_type))
    return ReceiptResponse.from_item(ledger.get(item_id))


@router.get("/{item_id}", response_model=ReceiptResponse)
async def get_receipt(item_id: str, ledger: Annotated[Ledger, Depends(get_ledger)]):
    """Get a receipt and its current status."""
    try:
        return ReceiptResponse.from_item(ledger.get(item_id))
    except ItemNotFoundError:
        raise _not_found() from None


@router.get("/{item_id}/image")
async def get_receipt_image(item_id: str, ledger: Annotated[Ledger, Depends(get_ledger)]):
    """Get the captured image of a receipt."""
    try:
        item = ledger.get(item_id)
    except ItemNotFoundError:
        raise _not_found() from None
    if not item.image:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receipt has no image")

    media_type, image_data = decode_image(item.image)
    return Response(content=image_data, media_type=media_type)


@router.post("/{item_id}/sync", response_model=ReceiptResponse, status_code=status.HTTP_202_ACCEPTED)
async def sync_receipt(item_id: str, ledger: Annotated[Ledger, Depends(get_ledger)]):
    """Send a reviewed receipt to the configured Google Form."""
    try:
        item = ledger.begin_sync(item_id)
    except ItemNotFoundError:
        raise _not_found() from None
    except ConfigurationMissingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except InvalidTransitionError as e:
        raise _conflict(e) from None
    return ReceiptResponse.from_item(item)


@router.post("/{item_id}/retry", response_model=ReceiptResponse, status_code=status.HTTP_202_ACCEPTED)
async def retry_receipt(item_id: str, ledger: Annotated[Ledger, Depends(get_ledger)]):
    """Retry extraction for a receipt that failed."""
    try:
        item = ledger.retry(item_id)
    except ItemNotFoundError:
        raise _not_found() from None
    except InvalidTransitionError as e:
        raise _conflict(e) from None
    return ReceiptResponse.from_item(item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_receipt(item_id: str, ledger: Annotated[Ledger, Depends(get_ledger)]):
    """Remove a receipt, whatever its status."""
    try:
        ledger.remove(item_id)
    except ItemNotFoundError:
        raise _not_found() from None
