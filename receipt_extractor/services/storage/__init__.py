from .ledger import ReceiptLedger

__all__ = ["ReceiptLedger"]
