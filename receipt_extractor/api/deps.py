from functools import lru_cache
from pathlib import Path

from fastapi import Depends
from pydantic import BaseModel

from ..core.config import settings
from ..models.receipt import Receipt
from ..services.image_store import ImageStore
from ..services.ocr import OcrAdapter, build_ocr_adapter
from ..services.pipeline import ExtractionPipeline
from ..services.storage import ReceiptLedger

class ReceiptListResponse(BaseModel):
    count: int
    receipts: list[Receipt]


@lru_cache
def _ledger_for(path: str, on_corrupt: str) -> ReceiptLedger:
    # One instance per file so every request shares the same lock
    return ReceiptLedger(Path(path), on_corrupt=on_corrupt)


def get_ledger() -> ReceiptLedger:
    return _ledger_for(str(settings.resolved_ledger_path), settings.ledger_on_corrupt)


def get_ocr_adapter() -> OcrAdapter:
    return build_ocr_adapter(settings)


def get_image_store() -> ImageStore:
    return ImageStore(Path(settings.uploads_dir), url_prefix=settings.uploads_url_prefix)


def get_pipeline(
    image_store: ImageStore = Depends(get_image_store),
    ocr: OcrAdapter = Depends(get_ocr_adapter),
    ledger: ReceiptLedger = Depends(get_ledger),
) -> ExtractionPipeline:
    return ExtractionPipeline(image_store, ocr, ledger, language=settings.ocr_language)
