from ledger.logic.retrying_ledger_client import RetryingLedgerClient

__all__ = ["RetryingLedgerClient"]
