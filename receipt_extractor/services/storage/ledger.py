"""
JSON-file ledger of processed receipts.

The whole ledger is a single JSON array. Every append reads it, adds one
record, and atomically replaces the file, so a record is either fully in the
ledger or not at all. A lock per ledger serializes read-modify-write cycles
between concurrent requests in the same process.

Entries are validated one by one: a record that is not a valid Receipt does not
invalidate the records around it.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Literal, Optional

from loguru import logger
from pydantic import ValidationError

from ...core.errors import LedgerCorrupted, LedgerWriteFailed
from ...models.receipt import Receipt


class ReceiptLedger:
    """
    Append-only receipt ledger backed by one JSON file.

    Recovery from unreadable content is governed by ``on_corrupt``:
    - "reset": log a warning and drop what cannot be read. An unreadable file
      or a non-array document empties the ledger; an invalid record is
      skipped. The next append rewrites the file without the dropped content
    - "fail": raise LedgerCorrupted and leave the file untouched
    """

    def __init__(self, path: Path, on_corrupt: Literal["reset", "fail"] = "reset"):
        """
        Args:
            path: Location of the ledger JSON file
            on_corrupt: Recovery policy for unreadable ledger content
        """
        if on_corrupt not in ("reset", "fail"):
            raise ValueError(f"on_corrupt must be 'reset' or 'fail', got {on_corrupt!r}")
        self.path = Path(path)
        self.on_corrupt = on_corrupt
        self._lock = threading.Lock()

    def append(self, receipt: Receipt) -> None:
        """
        Add a receipt to the end of the ledger.

        Raises:
            LedgerWriteFailed: the ledger file could not be written
            LedgerCorrupted: the existing ledger is unreadable and on_corrupt is "fail"
        """
        with self._lock:
            receipts = self._load()
            receipts.append(receipt)
            self._write(receipts)

        logger.info("Appended receipt to ledger", receipt_id=receipt.id, ledger_size=len(receipts))

    def list_all(self) -> list[Receipt]:
        """List all receipts in insertion order."""
        with self._lock:
            return self._load()

    def get(self, receipt_id: str) -> Optional[Receipt]:
        """Get a receipt by ID, or None if it is not in the ledger."""
        for receipt in self.list_all():
            if receipt.id == receipt_id:
                return receipt
        return None

    def _load(self) -> list[Receipt]:
        if not self.path.is_file():
            return []

        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return self._recover(e, raw=None)

        try:
            data = json.loads(raw)
        except ValueError as e:
            return self._recover(e, raw=raw)
        if not isinstance(data, list):
            return self._recover(ValueError(f"expected a JSON array, got {type(data).__name__}"), raw=raw)

        receipts = []
        for index, entry in enumerate(data):
            try:
                receipts.append(Receipt.model_validate(entry))
            except ValidationError as e:
                if self.on_corrupt == "fail":
                    logger.error(f"Receipt ledger {self.path} has an invalid record at index {index}: {e}")
                    raise LedgerCorrupted(e) from e
                logger.warning(
                    "Skipping invalid ledger record",
                    path=str(self.path),
                    index=index,
                    error=str(e),
                )
        return receipts

    def _recover(self, error: Exception, raw: Optional[str]) -> list[Receipt]:
        if self.on_corrupt == "fail":
            logger.error(f"Receipt ledger {self.path} is unreadable: {error}")
            raise LedgerCorrupted(error) from error

        logger.warning(
            "Could not read receipt ledger, starting a new one",
            path=str(self.path),
            discarded_bytes=len(raw.encode("utf-8")) if raw is not None else None,
            discarded_records=_count_records(raw),
            error=str(error),
        )
        return []

    def _write(self, receipts: list[Receipt]) -> None:
        tmp_path = None
        try:
            # Infinity/NaN are not JSON
            payload = json.dumps([r.model_dump() for r in receipts], indent=2, allow_nan=False)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".ledger-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to save {self.path.name}: {e}")
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise LedgerWriteFailed(e) from e


def _count_records(raw: Optional[str]) -> int:
    """Number of entries in an unreadable ledger that still parse as a JSON array, else 0."""
    if raw is None:
        return 0
    try:
        data = json.loads(raw)
    except ValueError:
        return 0
    return len(data) if isinstance(data, list) else 0
