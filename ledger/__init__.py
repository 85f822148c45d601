"""
Ledger feature.

Anchors small payloads on an append-only, publicly queryable ledger and
reads them back by reference.
"""
