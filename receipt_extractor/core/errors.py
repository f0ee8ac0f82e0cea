"""
Failure taxonomy for the receipt extraction pipeline.

Each error carries a ``public_message`` that is safe to return to API clients;
the underlying ``cause`` is only ever written to the server log.
"""


class ReceiptExtractionError(Exception):
    """Base class for every failure that aborts an extraction."""

    public_message = "Receipt extraction failed"
    client_error = False

    def __init__(self, cause: BaseException | None = None):
        self.cause = cause
        # Set by ExtractionPipeline to the stage that was running when it aborted
        self.stage: str | None = None
        super().__init__(self.public_message if cause is None else f"{self.public_message}: {cause}")


class InvalidFileType(ReceiptExtractionError):
    client_error = True

    def __init__(self, mime_type: str):
        self.mime_type = mime_type
        self.public_message = f"Invalid file type: {mime_type}"
        super().__init__()


class DirectoryCreateFailed(ReceiptExtractionError):
    public_message = "Failed to create uploads directory"


class ImageWriteFailed(ReceiptExtractionError):
    public_message = "Failed to save image"


class OcrExtractionFailed(ReceiptExtractionError):
    public_message = "OCR extraction failed"


class LedgerWriteFailed(ReceiptExtractionError):
    public_message = "Failed to save receipt data"


class LedgerCorrupted(ReceiptExtractionError):
    public_message = "Receipt ledger is unreadable"
