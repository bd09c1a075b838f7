"""
Transaction classification.

Conservative and deterministic: a record needs both endpoints and a value
to count as a transfer; anything with less evidence is unknown.
"""

from typing import Any

from activity_ingestion.models import ActivityType


def classify_transaction(record: dict[str, Any]) -> ActivityType:
    """Classify a raw provider record into a coarse activity type."""
    has_addresses = bool(record.get("from_address")) and bool(record.get("to_address"))
    has_value = record.get("value") is not None
    if has_addresses and has_value:
        return ActivityType.TRANSFER
    return ActivityType.UNKNOWN


METHOD_KEYWORDS: tuple[tuple[tuple[str, ...], ActivityType], ...] = (
    (("transfer",), ActivityType.TRANSFER),
    (("swap",), ActivityType.SWAP),
    (("mint",), ActivityType.MINT),
    (("burn",), ActivityType.BURN),
    (("fulfill", "atomic", "order"), ActivityType.NFT),
)


def classify_method(method: str) -> ActivityType:
    """Classify by contract method name, first matching keyword wins."""
    name = (method or "").lower()
    for keywords, activity_type in METHOD_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return activity_type
    return ActivityType.UNKNOWN
