"""
Activity Models - Canonical normalized unit of on-chain behavior.

Activities are created once (by the normalizer or the CSV importer) and
never mutated; collapsing builds new synthetic records instead.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from activity_ingestion.timestamps import sort_key


class ActivityType(str, Enum):
    """Coarse semantic classification of an activity."""
    TRANSFER = "transfer"
    SWAP = "swap"
    MINT = "mint"
    BURN = "burn"
    BRIDGE = "bridge"
    NFT = "nft"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Activity:
    """
    Normalized activity record.

    amount is always decimal-normalized (never raw integer units).
    amount_usd is a best-effort estimate and may be absent.
    """
    id: str
    chain_id: int
    timestamp: str
    type: ActivityType
    from_address: str
    to_address: str
    tx_hash: str
    token: Optional[str] = None
    amount: Optional[Decimal] = None
    amount_usd: Optional[Decimal] = None
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def occurred_at(self) -> datetime:
        """Timestamp as an aware datetime (epoch when unparsable)."""
        return sort_key(self.timestamp)

    @property
    def is_collapsed(self) -> bool:
        """True for synthetic records built by the pass-through collapser."""
        return bool(self.meta.get("collapsed"))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "chain_id": self.chain_id,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "from": self.from_address,
            "to": self.to_address,
            "token": self.token,
            "amount": str(self.amount) if self.amount is not None else None,
            "amount_usd": str(self.amount_usd) if self.amount_usd is not None else None,
            "tx_hash": self.tx_hash,
            "meta": dict(self.meta),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Activity":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            chain_id=int(data["chain_id"]),
            timestamp=data["timestamp"],
            type=ActivityType(data.get("type", ActivityType.UNKNOWN.value)),
            from_address=data.get("from", ""),
            to_address=data.get("to", ""),
            token=data.get("token"),
            amount=Decimal(data["amount"]) if data.get("amount") is not None else None,
            amount_usd=Decimal(data["amount_usd"]) if data.get("amount_usd") is not None else None,
            tx_hash=data.get("tx_hash", ""),
            meta=dict(data.get("meta") or {}),
        )


def sort_newest_first(activities: list[Activity]) -> list[Activity]:
    """Stable sort by timestamp, most recent first."""
    return sorted(activities, key=lambda a: a.occurred_at, reverse=True)
