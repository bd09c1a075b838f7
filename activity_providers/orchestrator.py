"""
Multi-Chain Orchestrator - Fetch one wallet across many chains.

Features:
- Bounded concurrency across chains
- One FetchResult per requested chain, in request order
- Partial failures absorbed into empty results and logged
- Missing credential is the only error raised to the caller
"""

import asyncio
import logging
from typing import Optional, Sequence

from activity_providers.base import BaseActivityProvider
from activity_providers.chains import chain_name
from activity_providers.exceptions import ActivityProviderError
from activity_providers.limiter import ConcurrencyLimiter
from activity_providers.models import FetchResult
from activity_providers.pagination import (
    DEFAULT_MAX_PAGES,
    DEFAULT_PAGE_DELAY_SECONDS,
    DEFAULT_PAGE_SIZE,
    fetch_all,
)


logger = logging.getLogger(__name__)


DEFAULT_CONCURRENCY = 2


def _describe_failure(error: BaseException) -> str:
    if isinstance(error, ActivityProviderError):
        return str(error)
    return f"{error.__class__.__name__}: {error}"


async def fetch_all_chains(
    provider: BaseActivityProvider,
    chain_ids: Sequence[int],
    address: str,
    concurrency: int = DEFAULT_CONCURRENCY,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_pages: int = DEFAULT_MAX_PAGES,
    page_delay: float = DEFAULT_PAGE_DELAY_SECONDS,
    limiter: Optional[ConcurrencyLimiter] = None,
) -> list[FetchResult]:
    """
    Fetch raw records for every chain, never aborting the batch.

    Args:
        provider: Provider client
        chain_ids: Chains to fetch
        address: Wallet address
        concurrency: Max chains fetched at once
        page_size: Records per page
        max_pages: Page ceiling per chain
        page_delay: Pause between pages of one chain
        limiter: Shared limiter (built from concurrency when omitted)

    Returns:
        One FetchResult per chain id, failed chains with empty items

    Raises:
        MissingCredentialError: Before any request when no key is set
    """
    provider.require_credential()
    limiter = limiter or ConcurrencyLimiter(concurrency)

    def make_task(chain_id: int):
        return lambda: fetch_all(
            provider,
            chain_id,
            address,
            page_size=page_size,
            max_pages=max_pages,
            page_delay=page_delay,
        )

    settled = await asyncio.gather(
        *(limiter.run(make_task(chain_id)) for chain_id in chain_ids),
        return_exceptions=True,
    )

    results: list[FetchResult] = []
    for chain_id, outcome in zip(chain_ids, settled):
        if isinstance(outcome, Exception):
            reason = _describe_failure(outcome)
            logger.warning(f"[{provider.name}] Fetch {chain_name(chain_id)} (chain {chain_id}) failed: {reason}")
            results.append(FetchResult(chain_id=chain_id, items=[], error=reason))
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            results.append(FetchResult(chain_id=chain_id, items=outcome))

    failed = sum(1 for r in results if not r.ok)
    logger.info(
        f"[{provider.name}] Fetched {len(results)} chains for {address} "
        f"({failed} failed, {sum(len(r.items) for r in results)} records)"
    )
    return results
