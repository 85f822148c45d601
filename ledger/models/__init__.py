from ledger.models.ledger_records import LedgerReceipt, LedgerRecord

__all__ = ["LedgerReceipt", "LedgerRecord"]
