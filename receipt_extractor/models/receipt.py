from pydantic import BaseModel, Field


class ReceiptItem(BaseModel):
    model_config = {"allow_inf_nan": False}

    item_name: str
    item_cost: float


class ParsedReceipt(BaseModel):
    """Fields recovered from OCR text, before an id and image are attached."""
    model_config = {"allow_inf_nan": False}

    date: str = ""
    currency: str = ""
    vendor_name: str = ""
    receipt_items: list[ReceiptItem] = Field(default_factory=list)
    tax: float = 0.0
    total: float = 0.0


class Receipt(BaseModel):
    model_config = {"allow_inf_nan": False}

    id: str
    date: str = ""
    currency: str = ""
    vendor_name: str = ""
    receipt_items: list[ReceiptItem] = Field(default_factory=list)
    tax: float = 0.0
    total: float = 0.0
    image_url: str  # e.g. /uploads/<uuid>_<original name>
