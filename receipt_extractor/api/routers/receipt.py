from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from loguru import logger
from starlette.concurrency import run_in_threadpool

from ..deps import ReceiptListResponse, get_ledger, get_pipeline
from ...core.errors import ReceiptExtractionError
from ...models.receipt import Receipt
from ...services.pipeline import ExtractionPipeline
from ...services.storage import ReceiptLedger

router = APIRouter(prefix="/receipt", tags=["receipt"])


@router.post("/extract-receipt-details", response_model=Receipt)
async def extract_receipt_details(
    file: UploadFile = File(...),
    pipeline: ExtractionPipeline = Depends(get_pipeline),
):
    """
    Extract receipt details from an uploaded image.

    Accepts a single multipart field ``file`` (JPEG or PNG). The image is
    stored under /uploads, run through OCR, parsed, and appended to the
    receipt ledger.

    Example response:
    {
        "id": "5f0c...",
        "date": "12/25/2023",
        "currency": "",
        "vendor_name": "STARBUCKS COFFEE",
        "receipt_items": [{"item_name": "Coffee Large", "item_cost": 4.99}, ...],
        "tax": 0.68,
        "total": 9.17,
        "image_url": "/uploads/5a1e..._receipt.jpg"
    }
    """
    content = await file.read()
    logger.info(
        "Receipt upload received",
        filename=file.filename,
        content_type=file.content_type,
        size_bytes=len(content)
    )

    try:
        # Pipeline does blocking file and OCR I/O
        return await run_in_threadpool(
            pipeline.run, content, file.content_type or "", file.filename or ""
        )
    except ReceiptExtractionError as e:
        status_code = 400 if e.client_error else 500
        raise HTTPException(status_code=status_code, detail=e.public_message)


@router.get("", response_model=ReceiptListResponse)
async def list_receipts(ledger: ReceiptLedger = Depends(get_ledger)):
    """List all processed receipts in the order they were extracted"""
    try:
        receipts = await run_in_threadpool(ledger.list_all)
    except ReceiptExtractionError as e:
        raise HTTPException(status_code=500, detail=e.public_message)
    return ReceiptListResponse(count=len(receipts), receipts=receipts)


@router.get("/{receipt_id}", response_model=Receipt)
async def get_receipt(receipt_id: str, ledger: ReceiptLedger = Depends(get_ledger)):
    try:
        receipt = await run_in_threadpool(ledger.get, receipt_id)
    except ReceiptExtractionError as e:
        raise HTTPException(status_code=500, detail=e.public_message)

    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return receipt
