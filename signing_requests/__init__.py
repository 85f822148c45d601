"""
Signing requests feature.

Collects signatures from a fixed approver set and, once the last approver
has signed, stamps, seals, hashes and anchors the document exactly once.
"""
