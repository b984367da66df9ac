"""
scangate - scan ingestion and anti-fraud gate for card tap events.

Validates scan requests, applies the per-card fraud policy, seals each
admitted scan with an HMAC integrity code and appends it to the scan ledger.
"""

__version__ = "1.0.0"
