"""
Pass-through collapsing.

A relay hop is an inbound transfer A -> X followed, within a time window,
by an outbound transfer X -> B of about the same value on the same chain.
Each matched pair is replaced by one synthetic A -> B transfer.

This is a best-effort heuristic, not a proof of fund flow. Unrelated
transfers that happen to line up will be merged (false positives), and
hops through several relays or outside the window are left alone (false
negatives). Only one pass is made; chains of hops are not followed.
"""

import logging
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal
from typing import Iterable, Optional, Union

from activity_ingestion.models import Activity, ActivityType, sort_newest_first


logger = logging.getLogger(__name__)


DEFAULT_WINDOW = timedelta(minutes=60)
DEFAULT_AMOUNT_TOLERANCE = 0.01


def _within_tolerance(a: Decimal, b: Decimal, tolerance: Decimal) -> bool:
    return abs(a - b) <= max(abs(a), abs(b)) * tolerance


def legs_match(inbound: Activity, outbound: Activity, tolerance: Decimal) -> bool:
    """Same chain, compatible token, and amounts (or USD values) within tolerance."""
    if inbound.chain_id != outbound.chain_id:
        return False
    if inbound.token and outbound.token and inbound.token != outbound.token:
        return False
    if inbound.amount is not None and outbound.amount is not None:
        return _within_tolerance(inbound.amount, outbound.amount, tolerance)
    if inbound.amount_usd is not None and outbound.amount_usd is not None:
        return _within_tolerance(inbound.amount_usd, outbound.amount_usd, tolerance)
    return False


def _smallest(*values: Optional[Decimal]) -> Optional[Decimal]:
    present = [v for v in values if v is not None]
    return min(present) if present else None


def merge_legs(inbound: Activity, outbound: Activity) -> Activity:
    """Build the synthetic transfer for a matched inbound/outbound pair."""
    return Activity(
        id=f"collapsed:{inbound.id}>{outbound.id}",
        chain_id=inbound.chain_id,
        timestamp=outbound.timestamp,
        type=ActivityType.TRANSFER,
        from_address=inbound.from_address,
        to_address=outbound.to_address,
        token=inbound.token or outbound.token,
        amount=_smallest(inbound.amount, outbound.amount),
        amount_usd=_smallest(inbound.amount_usd, outbound.amount_usd),
        tx_hash=outbound.tx_hash,
        meta={
            "collapsed": True,
            "via": inbound.to_address.lower(),
            "in_id": inbound.id,
            "out_id": outbound.id,
        },
    )


def collapse_pass_through(
    activities: Iterable[Activity],
    window: timedelta = DEFAULT_WINDOW,
    amount_tolerance: Union[float, Decimal] = DEFAULT_AMOUNT_TOLERANCE,
) -> list[Activity]:
    """
    Merge relay-hop pairs into single synthetic transfers.

    Inbound transfers are matched earliest first against the earliest
    eligible outbound transfer from their receiver whose timestamp lies in
    [inbound, inbound + window]. A record takes part in at most one match.

    Args:
        activities: Canonical timeline
        window: Maximum delay between the two legs
        amount_tolerance: Relative tolerance, e.g. 0.01 for 1%

    Returns:
        Synthetic and unmatched activities, newest first
    """
    items = list(activities)
    window = max(window, timedelta(0))
    tolerance = max(Decimal(str(amount_tolerance)), Decimal(0))

    transfers = sorted(
        (a for a in items if a.type == ActivityType.TRANSFER),
        key=lambda a: a.occurred_at,
    )

    outbound_by_sender: dict[str, list[Activity]] = defaultdict(list)
    for activity in transfers:
        if activity.from_address:
            outbound_by_sender[activity.from_address.lower()].append(activity)

    consumed: set[str] = set()
    collapsed: list[Activity] = []

    for inbound in transfers:
        if inbound.id in consumed:
            continue
        relay = inbound.to_address.lower()
        if not relay:
            continue

        inbound_at = inbound.occurred_at
        for outbound in outbound_by_sender.get(relay, ()):
            if outbound.id == inbound.id or outbound.id in consumed:
                continue
            delay = outbound.occurred_at - inbound_at
            if delay < timedelta(0):
                continue
            if delay > window:
                break
            if legs_match(inbound, outbound, tolerance):
                consumed.add(inbound.id)
                consumed.add(outbound.id)
                collapsed.append(merge_legs(inbound, outbound))
                break

    if collapsed:
        logger.debug(f"Collapsed {len(collapsed)} pass-through pairs")

    survivors = [a for a in items if a.id not in consumed]
    return sort_newest_first(collapsed + survivors)
