"""
Integrity codec for scan records.

A scan's checksum is HMAC-SHA256 over ``uid + timestamp + campaign_id`` keyed
with the server secret, hex encoded. The fields are concatenated without
separators: the timestamp has a fixed-width canonical form and uids are
alphanumeric, so the concatenation is unambiguous.
"""

import hashlib
import hmac
from datetime import datetime

from scangate.core.clock import format_timestamp
from scangate.core.errors import IntegrityMismatchError

CHECKSUM_HEX_LENGTH = hashlib.sha256().digest_size * 2


def _timestamp_text(timestamp: datetime | str) -> str:
    if isinstance(timestamp, datetime):
        return format_timestamp(timestamp)
    return timestamp


def seal(uid: str, timestamp: datetime | str, campaign_id: str, secret: str) -> str:
    """
    Compute the checksum for a scan.

    Args:
        uid: Card identifier
        timestamp: Admission instant (datetime or canonical string)
        campaign_id: Campaign tag
        secret: HMAC key

    Returns:
        64-character lowercase hex digest
    """
    message = f"{uid}{_timestamp_text(timestamp)}{campaign_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify(
    uid: str,
    timestamp: datetime | str,
    campaign_id: str,
    checksum: str,
    secret: str,
) -> bool:
    """
    Recompute the checksum and compare it in constant time.

    Malformed or wrong-length checksums simply fail verification.
    """
    if not isinstance(checksum, str):
        return False
    expected = seal(uid, timestamp, campaign_id, secret)
    return hmac.compare_digest(expected.encode("utf-8"), checksum.encode("utf-8"))


def verify_record(record, secret: str) -> None:
    """
    Raise IntegrityMismatchError unless the record's checksum reproduces.

    Args:
        record: ScanRecord to re-validate
        secret: HMAC key
    """
    if not verify(record.uid, record.timestamp, record.campaign_id, record.checksum, secret):
        raise IntegrityMismatchError(record.scan_id)
