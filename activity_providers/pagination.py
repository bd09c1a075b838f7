"""
Multi-page fetcher.

Drives one provider across pages for a single (chain, address) pair.
Pages are requested strictly one after another because each request
depends on the previous continuation token.
"""

import asyncio
import logging
from typing import Any

from activity_providers.base import BaseActivityProvider
from activity_providers.models import PageParams


logger = logging.getLogger(__name__)


DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 10
DEFAULT_PAGE_DELAY_SECONDS = 0.2


async def fetch_all(
    provider: BaseActivityProvider,
    chain_id: int,
    address: str,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_pages: int = DEFAULT_MAX_PAGES,
    page_delay: float = DEFAULT_PAGE_DELAY_SECONDS,
) -> list[dict[str, Any]]:
    """
    Fetch and accumulate raw records across pages.

    Stops when the continuation is exhausted, when a page comes back
    shorter than the page size the provider actually requests (see
    effective_page_size), or after max_pages requests. A failing page
    is not retried; the error propagates to the caller.

    Args:
        provider: Provider client
        chain_id: Numeric chain id
        address: Wallet address
        page_size: Requested records per page
        max_pages: Hard ceiling on page requests
        page_delay: Pause between page requests, in seconds

    Returns:
        All raw records in fetch order
    """
    records: list[dict[str, Any]] = []
    params = PageParams(page_size=page_size)
    full_page = provider.effective_page_size(page_size)

    for page_index in range(max_pages):
        page = await provider.fetch_page(chain_id, address, params)
        records.extend(page.records)

        if not page.has_more(full_page):
            break

        if page_index + 1 >= max_pages:
            logger.info(
                f"[{provider.name}] chain={chain_id} stopped at max_pages={max_pages} "
                f"with more data available"
            )
            break

        params = params.advance(page.continuation)
        await asyncio.sleep(page_delay)

    logger.debug(f"[{provider.name}] chain={chain_id} fetched {len(records)} records")
    return records
