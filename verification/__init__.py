"""
Verification feature.

Proves whether an arbitrary PDF is byte-identical to a sealed request by
cross-checking its hash against the request store and the ledger, then
assembles chain-of-custody evidence and a trust score.
"""
