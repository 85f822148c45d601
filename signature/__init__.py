"""
Core Signature module.

Renders visible approver stamps onto PDF pages (overlay merge), tags the
document with its custody request id and applies the final cryptographic
seal with the organisation's credential.
"""
