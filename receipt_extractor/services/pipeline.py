"""
Receipt extraction pipeline.

Runs one upload through validate -> store -> OCR -> parse -> persist. The
first failing stage aborts the run and its error propagates to the caller;
nothing is retried and no partial receipt is returned. Side effects of
earlier stages (the saved image) are kept even when a later stage fails.
"""

import uuid
from enum import Enum

from loguru import logger

from ..core.errors import OcrExtractionFailed, ReceiptExtractionError
from ..models.receipt import Receipt
from .image_store import ImageStore
from .ocr import OcrAdapter
from .receipt_parser import parse_receipt
from .storage.ledger import ReceiptLedger
from .validator import validate_mime_type


class PipelineStage(str, Enum):
    VALIDATING = "validating"
    STORING = "storing"
    RECOGNIZING = "recognizing"
    PARSING = "parsing"
    PERSISTING = "persisting"
    DONE = "done"


class ExtractionPipeline:
    def __init__(
        self,
        image_store: ImageStore,
        ocr: OcrAdapter,
        ledger: ReceiptLedger,
        language: str = "eng",
    ):
        self.image_store = image_store
        self.ocr = ocr
        self.ledger = ledger
        self.language = language

    def run(self, image_bytes: bytes, mime_type: str, original_name: str) -> Receipt:
        """
        Extract, persist and return a receipt from an uploaded image.

        Raises:
            ReceiptExtractionError: a stage failed; ``stage`` names which one
        """
        stage = PipelineStage.VALIDATING
        try:
            validate_mime_type(mime_type)

            stage = PipelineStage.STORING
            stored = self.image_store.save(image_bytes, original_name)

            stage = PipelineStage.RECOGNIZING
            text = self._recognize(stored.storage_path)

            stage = PipelineStage.PARSING
            fields = parse_receipt(text)
            receipt = Receipt(
                id=str(uuid.uuid4()),
                image_url=self.image_store.url_for(stored.stored_name),
                **fields.model_dump(),
            )

            stage = PipelineStage.PERSISTING
            self.ledger.append(receipt)
        except ReceiptExtractionError as e:
            e.stage = stage.value
            log = logger.warning if e.client_error else logger.error
            log("Receipt extraction aborted", stage=stage.value, error=type(e).__name__)
            raise

        logger.info(
            "Receipt extracted",
            stage=PipelineStage.DONE.value,
            receipt_id=receipt.id,
            vendor=receipt.vendor_name,
            items=len(receipt.receipt_items),
            total=receipt.total,
        )
        return receipt

    def _recognize(self, image_path) -> str:
        try:
            text = self.ocr.recognize(image_path, self.language)
        except OcrExtractionFailed:
            raise
        except Exception as e:
            # Engines are external code; anything they raise is an OCR failure
            logger.error(f"OCR engine raised {type(e).__name__}: {e}")
            raise OcrExtractionFailed(e) from e

        if text is None:
            raise OcrExtractionFailed(ValueError("OCR engine returned no result"))
        return text
