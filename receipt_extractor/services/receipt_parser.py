"""
Rule-based extraction of receipt fields from raw OCR text.

Each field has its own rule that scans the whole text independently and
returns None when nothing matches; ``parse_receipt`` fills in the defaults.
The rules are deliberately loose. In particular the line-item rule also picks
up the Tax and Total lines, since any "<words> <amount>" line looks like an
item.
"""

import math
import re

from ..models.receipt import ParsedReceipt, ReceiptItem

CURRENCY_CODES = ("USD", "SGD", "EUR", "INR", "GBP", "MYR", "AUD", "CAD", "JPY", "CNY")

_AMOUNT = r"([0-9]+(?:\.[0-9]+)?)"

DATE_RE = re.compile(r"[0-9]{1,4}[/.\-][0-9]{1,2}[/.\-][0-9]{1,4}")
CURRENCY_RE = re.compile(r"\b(" + "|".join(CURRENCY_CODES) + r")\b")
TOTAL_RE = re.compile(r"Total\s*:?[\s$]*" + _AMOUNT, re.IGNORECASE)
TAX_RE = re.compile(r"(?:GST|Tax)\s*:?[\s$]*" + _AMOUNT, re.IGNORECASE)
# Item names stay on one line: letters, digits, spaces and tabs
ITEM_RE = re.compile(r"([A-Za-z0-9 \t]+)[ \t]+" + _AMOUNT)


def _amount(token: str) -> float | None:
    # Overlong digit runs overflow to inf
    value = float(token)
    return value if math.isfinite(value) else None


def extract_date(text: str) -> str | None:
    match = DATE_RE.search(text)
    return match.group(0) if match else None


def extract_currency(text: str) -> str | None:
    match = CURRENCY_RE.search(text)
    return match.group(1) if match else None


def extract_vendor(text: str) -> str | None:
    first_line = text.split("\n")[0].strip()
    return first_line or None


def extract_total(text: str) -> float | None:
    match = TOTAL_RE.search(text)
    return _amount(match.group(1)) if match else None


def extract_tax(text: str) -> float | None:
    match = TAX_RE.search(text)
    return _amount(match.group(1)) if match else None


def extract_items(text: str) -> list[ReceiptItem]:
    items = []
    for match in ITEM_RE.finditer(text):
        cost = _amount(match.group(2))
        if cost is not None:
            items.append(ReceiptItem(item_name=match.group(1).strip(), item_cost=cost))
    return items


def parse_receipt(raw_text: str) -> ParsedReceipt:
    """Parse OCR text into receipt fields. Never fails; unmatched fields get defaults."""
    return ParsedReceipt(
        date=extract_date(raw_text) or "",
        currency=extract_currency(raw_text) or "",
        vendor_name=extract_vendor(raw_text) or "",
        receipt_items=extract_items(raw_text),
        tax=extract_tax(raw_text) or 0.0,
        total=extract_total(raw_text) or 0.0,
    )
