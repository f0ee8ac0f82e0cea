from fastapi.testclient import TestClient
from receipt_extractor.api.deps import get_ocr_adapter
from receipt_extractor.api.main import app
from receipt_extractor.core.config import settings
from receipt_extractor.core.errors import OcrExtractionFailed
from tests.ocr_samples import STARBUCKS_TEXT, WALMART_TEXT
import io
import json
import pytest


@pytest.fixture
def client(tmp_path, fake_ocr):
    # Point storage at a temp directory and swap in the fake OCR engine
    original_uploads_dir = settings.uploads_dir
    original_ledger_path = settings.ledger_path
    original_on_corrupt = settings.ledger_on_corrupt
    settings.uploads_dir = str(tmp_path / "uploads")
    settings.ledger_path = None
    settings.ledger_on_corrupt = "reset"
    app.dependency_overrides[get_ocr_adapter] = lambda: fake_ocr

    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
        settings.uploads_dir = original_uploads_dir
        settings.ledger_path = original_ledger_path
        settings.ledger_on_corrupt = original_on_corrupt


def upload(client, content=b"fake-image-data", filename="receipt.jpg", mime_type="image/jpeg"):
    files = {"file": (filename, io.BytesIO(content), mime_type)}
    return client.post("/receipt/extract-receipt-details", files=files)


def ledger_file(tmp_path):
    return tmp_path / "uploads" / "receipts.json"


def test_extract_success(client, fake_ocr, tmp_path):
    fake_ocr.text = STARBUCKS_TEXT

    r = upload(client)
    assert r.status_code == 200
    body = r.json()

    # Contract: keys present
    for k in ["id", "date", "currency", "vendor_name", "receipt_items", "tax", "total", "image_url"]:
        assert k in body
    assert body["vendor_name"] == "STARBUCKS COFFEE"
    assert body["date"] == "12/25/2023"
    assert body["tax"] == 0.68
    assert body["total"] == 9.17
    assert {"item_name": "Coffee Large", "item_cost": 4.99} in body["receipt_items"]
    assert body["image_url"].startswith("/uploads/")
    assert body["image_url"].endswith("_receipt.jpg")

    stored = tmp_path / "uploads" / body["image_url"].removeprefix("/uploads/")
    assert stored.read_bytes() == b"fake-image-data"
    assert json.loads(ledger_file(tmp_path).read_text(encoding="utf-8")) == [body]


def test_extract_png(client, fake_ocr):
    fake_ocr.text = WALMART_TEXT
    r = upload(client, filename="walmart.png", mime_type="image/png")
    assert r.status_code == 200
    assert r.json()["currency"] == "USD"


def test_extract_invalid_type_returns_400(client, fake_ocr, tmp_path):
    r = upload(client, content=b"%PDF-1.4 minimal", filename="document.pdf", mime_type="application/pdf")

    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid file type: application/pdf"
    assert fake_ocr.calls == []
    assert list((tmp_path / "uploads").iterdir()) == []


def test_extract_missing_file_returns_422(client):
    # 422 Unprocessable Entity
    r = client.post("/receipt/extract-receipt-details")
    assert r.status_code == 422


def test_ocr_failure_returns_500_without_cause(client, fake_ocr, tmp_path):
    fake_ocr.error = OcrExtractionFailed(RuntimeError("tesseract crashed at /usr/bin/tesseract"))

    r = upload(client)

    assert r.status_code == 500
    assert r.json()["detail"] == "OCR extraction failed"
    assert "tesseract crashed" not in r.text
    assert not ledger_file(tmp_path).exists()


def test_unwritable_filename_returns_500(client, fake_ocr, tmp_path):
    # Raw multipart body so the NUL byte in the filename reaches the server unchanged
    boundary = "receipt-boundary"
    body = (
        f"--{boundary}\r\n"
        'Content-Disposition: form-data; name="file"; filename="a\x00b.jpg"\r\n'
        "Content-Type: image/jpeg\r\n\r\n"
        "fake-image-data\r\n"
        f"--{boundary}--\r\n"
    ).encode("latin-1")

    r = client.post(
        "/receipt/extract-receipt-details",
        content=body,
        headers={"Content-Type": f"multipart/form-data; boundary={boundary}"},
    )

    assert r.status_code == 500
    assert r.json()["detail"] == "Failed to save image"
    assert fake_ocr.calls == []
    assert [p for p in (tmp_path / "uploads").iterdir() if p.name.endswith(".tmp")] == []
    assert not ledger_file(tmp_path).exists()


def test_ledger_write_failure_returns_500(client, tmp_path):
    ledger_file(tmp_path).mkdir(parents=True)

    r = upload(client)

    assert r.status_code == 500
    assert r.json()["detail"] == "Failed to save receipt data"


def test_corrupt_ledger_is_reset(client, tmp_path):
    ledger_file(tmp_path).write_text("{not json", encoding="utf-8")

    r = upload(client)
    assert r.status_code == 200

    data = json.loads(ledger_file(tmp_path).read_text(encoding="utf-8"))
    assert [item["id"] for item in data] == [r.json()["id"]]


def test_corrupt_ledger_fails_when_configured(client, tmp_path):
    settings.ledger_on_corrupt = "fail"
    ledger_file(tmp_path).write_text("{not json", encoding="utf-8")

    r = upload(client)
    assert r.status_code == 500
    assert r.json()["detail"] == "Receipt ledger is unreadable"

    r = client.get("/receipt")
    assert r.status_code == 500


def test_list_and_get_receipts(client, fake_ocr):
    fake_ocr.text = STARBUCKS_TEXT
    first = upload(client).json()
    fake_ocr.text = WALMART_TEXT
    second = upload(client, filename="receipt.jpg").json()

    r = client.get("/receipt")
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 2
    assert [item["id"] for item in body["receipts"]] == [first["id"], second["id"]]

    r = client.get(f"/receipt/{second['id']}")
    assert r.status_code == 200
    assert r.json()["vendor_name"] == "WALMART SUPERCENTER"


def test_get_unknown_receipt_returns_404(client):
    r = client.get("/receipt/does-not-exist")
    assert r.status_code == 404


def test_list_empty_ledger(client):
    r = client.get("/receipt")
    assert r.status_code == 200
    assert r.json() == {"count": 0, "receipts": []}


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
