"""
OCR engine adapters.

The extraction pipeline only depends on ``OcrAdapter.recognize``; which engine
backs it is a deployment choice made through ``OCR_ENGINE``:

- tesseract: local Tesseract binary via pytesseract (default)
- azure: Azure Document Intelligence ``prebuilt-read`` model
- http: a remote OCR service that accepts a multipart upload at ``/ocr``

Every engine failure surfaces as OcrExtractionFailed. An engine that runs
successfully but finds no text returns an empty string.
"""

import time
from abc import ABC, abstractmethod
from pathlib import Path

import httpx
from loguru import logger

from ..core.config import Settings
from ..core.errors import OcrExtractionFailed


class OcrAdapter(ABC):
    """Boundary to an external OCR engine."""

    @abstractmethod
    def recognize(self, image_path: Path, language: str = "eng") -> str:
        """
        Extract raw text from a stored image.

        Args:
            image_path: Path of the persisted image file
            language: Language hint for engines that accept one

        Returns:
            Raw OCR text (possibly empty)

        Raises:
            OcrExtractionFailed: the engine could not process the image
        """
        pass


class TesseractOcr(OcrAdapter):
    def __init__(self, tesseract_cmd: str | None = None):
        self.tesseract_cmd = tesseract_cmd

    def recognize(self, image_path: Path, language: str = "eng") -> str:
        import pytesseract
        from PIL import Image

        if self.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd

        try:
            with Image.open(image_path) as img:
                text = pytesseract.image_to_string(img, lang=language)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as e:
            logger.error(f"Tesseract OCR failed for {image_path.name}: {e}")
            raise OcrExtractionFailed(e) from e

        logger.info("Tesseract OCR complete", image=image_path.name, chars=len(text))
        return text


class AzureReadOcr(OcrAdapter):
    def __init__(self, endpoint: str, api_key: str):
        self.endpoint = endpoint
        self.api_key = api_key

    def _client(self):
        from azure.ai.documentintelligence import DocumentIntelligenceClient
        from azure.core.credentials import AzureKeyCredential

        return DocumentIntelligenceClient(
            endpoint=self.endpoint,
            credential=AzureKeyCredential(self.api_key)
        )

    def recognize(self, image_path: Path, language: str = "eng") -> str:
        # Azure detects the language itself; the Tesseract-style hint is not a valid locale
        from azure.core.exceptions import AzureError

        logger.info(
            "Using Azure Document Intelligence for OCR",
            endpoint=self.endpoint[:50] + "..." if len(self.endpoint) > 50 else self.endpoint
        )

        try:
            image_bytes = image_path.read_bytes()
            poller = self._client().begin_analyze_document(
                "prebuilt-read",
                body=image_bytes,
                content_type="application/octet-stream"
            )
            result = poller.result()
        except (AzureError, OSError) as e:
            logger.error(f"Azure DI extraction failed: {e}")
            raise OcrExtractionFailed(e) from e

        return result.content or ""


class HttpOcr(OcrAdapter):
    """Client for an OCR service that answers ``POST /ocr`` with ``{"text": ...}``."""

    def __init__(self, service_url: str, timeout: float = 60.0):
        self.service_url = service_url.rstrip("/")
        self.timeout = timeout

    def recognize(self, image_path: Path, language: str = "eng") -> str:
        logger.info(f"Sending receipt to OCR service at {self.service_url}...")

        try:
            image_bytes = image_path.read_bytes()
            start_time = time.time()
            response = httpx.post(
                f"{self.service_url}/ocr",
                files={"file": (image_path.name, image_bytes, "application/octet-stream")},
                data={"language": language},
                timeout=self.timeout,
            )
            logger.info(f"OCR service returned in {time.time() - start_time:.2f} seconds")
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"Failed to reach OCR service: {e}")
            raise OcrExtractionFailed(e) from e

        if response.status_code != 200:
            logger.error(f"OCR service error: {response.status_code}")
            raise OcrExtractionFailed(RuntimeError(f"OCR service returned {response.status_code}"))

        try:
            text = response.json()["text"]
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"OCR service returned an unexpected body: {e}")
            raise OcrExtractionFailed(e) from e

        if not isinstance(text, str):
            raise OcrExtractionFailed(TypeError(f"OCR text is {type(text).__name__}, expected str"))
        return text


def build_ocr_adapter(settings: Settings) -> OcrAdapter:
    """Construct the OCR engine selected by OCR_ENGINE."""
    engine = settings.ocr_engine.lower()

    if engine == "tesseract":
        return TesseractOcr(tesseract_cmd=settings.tesseract_cmd)

    if engine == "azure":
        if not (settings.az_di_endpoint and settings.az_di_api_key):
            raise ValueError("OCR_ENGINE=azure requires AZ_DI_ENDPOINT and AZ_DI_API_KEY")
        return AzureReadOcr(settings.az_di_endpoint, settings.az_di_api_key)

    if engine == "http":
        return HttpOcr(settings.ocr_service_url, timeout=settings.ocr_timeout_seconds)

    raise ValueError(f"Unknown OCR_ENGINE: {settings.ocr_engine}")
