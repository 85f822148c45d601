from ledger.adapters.ledger_client import LedgerClient
from ledger.adapters.http_ledger_client import HttpLedgerClient
from ledger.adapters.file_ledger_client import FileLedgerClient

__all__ = ["LedgerClient", "HttpLedgerClient", "FileLedgerClient"]
