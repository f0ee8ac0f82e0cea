"""
Pytest configuration and shared fixtures.

Registers the ``integration`` marker (tests that need a real OCR engine) and
provides an in-process OCR stand-in plus an isolated uploads directory.
"""

import pytest

from receipt_extractor.services.image_store import ImageStore
from receipt_extractor.services.pipeline import ExtractionPipeline
from receipt_extractor.services.storage import ReceiptLedger
from tests.ocr_samples import FakeOcr


def pytest_addoption(parser):
    """Add custom command-line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against a real OCR engine"
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring a real OCR engine"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def fake_ocr():
    return FakeOcr()


@pytest.fixture
def uploads_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def ledger(uploads_dir):
    return ReceiptLedger(uploads_dir / "receipts.json")


@pytest.fixture
def pipeline(uploads_dir, fake_ocr, ledger):
    return ExtractionPipeline(ImageStore(uploads_dir), fake_ocr, ledger)
