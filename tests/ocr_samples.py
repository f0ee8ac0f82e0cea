"""
Canned OCR output and an in-process OCR engine for tests.
"""

from pathlib import Path

from receipt_extractor.services.ocr import OcrAdapter


STARBUCKS_TEXT = """STARBUCKS COFFEE
12/25/2023
Coffee Large 4.99
Muffin 3.50
Tax 0.68
Total 9.17"""

WALMART_TEXT = """WALMART SUPERCENTER
2023-12-01
Apples 2.99
Bread 1.50
Milk USD 3.25
GST: 0.41
Total: 8.15"""


class FakeOcr(OcrAdapter):
    """Returns canned text (or raises) and records every call."""

    def __init__(self, text: str = "", error: Exception | None = None):
        self.text = text
        self.error = error
        self.calls = []

    def recognize(self, image_path: Path, language: str = "eng") -> str:
        self.calls.append((image_path, language))
        if self.error is not None:
            raise self.error
        return self.text
