"""
Merge/dedup of API-sourced and file-sourced activities.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from activity_ingestion.models import Activity, sort_newest_first
from activity_ingestion.normalizer import MISSING_TX_HASH


logger = logging.getLogger(__name__)


def _usd_rank(value: Optional[Decimal]) -> Decimal:
    # absent ranks below any reported value, including negatives
    return value if value is not None else Decimal("-Infinity")


def merge_activities(
    api_activities: Iterable[Activity],
    file_activities: Iterable[Activity],
) -> list[Activity]:
    """
    Reconcile both sources into one duplicate-free timeline.

    1. Union by id; the API record wins an id collision.
    2. Dedup by tx hash; the higher amount_usd wins, the first seen wins ties.

    Records without a hash are only exempt from step 2. API records
    lacking a hash all share the id "{chain_id}:unknown", so step 1 keeps
    just the first of them per chain.

    Returns:
        Activities sorted newest first
    """
    by_id: dict[str, Activity] = {}
    for activity in api_activities:
        by_id.setdefault(activity.id, activity)
    for activity in file_activities:
        by_id.setdefault(activity.id, activity)

    by_hash: dict[str, Activity] = {}
    for activity in by_id.values():
        key = activity.id if activity.tx_hash in ("", MISSING_TX_HASH) else activity.tx_hash
        previous = by_hash.get(key)
        if previous is None or _usd_rank(activity.amount_usd) > _usd_rank(previous.amount_usd):
            by_hash[key] = activity

    dropped = len(by_id) - len(by_hash)
    if dropped:
        logger.debug(f"Dropped {dropped} activities sharing a transaction hash")

    return sort_newest_first(list(by_hash.values()))
