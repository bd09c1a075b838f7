"""
Covalent (GoldRush) Provider - Offset-paginated transaction history.

Endpoint:
    GET {base}/{chainId}/address/{address}/transactions_v3/
        ?page-size=N&page-number=P[&key=...]

The credential goes into the `key` query parameter by default, or into a
configurable header (e.g. `Authorization: Bearer cqt_...`).
"""

import logging
from typing import Any, Optional

from activity_providers.base import BaseActivityProvider
from activity_providers.exceptions import (
    MalformedResponseError,
    ProviderRequestError,
)
from activity_providers.models import PageParams, RawPage


logger = logging.getLogger(__name__)


class CovalentProvider(BaseActivityProvider):
    """
    Offset-style provider ("page-size" + "page-number").

    The next page number is the continuation; the multi-page fetcher stops
    on a short page regardless.
    """

    BASE_URL = "https://api.covalenthq.com/v1"

    @property
    def name(self) -> str:
        """Unique identifier."""
        return "covalent"

    def default_base_url(self) -> str:
        return self.BASE_URL

    async def _fetch_page(
        self,
        chain_id: int,
        address: str,
        page_params: PageParams,
    ) -> RawPage:
        """Fetch one transactions_v3 page."""
        params: dict[str, Any] = {"page-size": str(page_params.page_size)}
        # page 0 is the provider default and is not sent
        if page_params.page_number:
            params["page-number"] = str(page_params.page_number)
        params.update(self._auth_params())

        url = f"{self._base_url}/{chain_id}/address/{address}/transactions_v3/"
        payload = await self._make_request(
            url,
            params=params,
            headers=self._auth_headers(),
            chain_id=chain_id,
        )
        data = self._unwrap(payload, chain_id)

        if isinstance(data, list):
            return RawPage(records=data, continuation=page_params.page_number + 1)

        if isinstance(data, dict):
            items = data.get("items") or []
            if not isinstance(items, list):
                raise MalformedResponseError(
                    message="'items' is not a list",
                    provider_name=self.name,
                    chain_id=chain_id,
                    raw_data=data,
                )
            return RawPage(
                records=items,
                continuation=self._next_page(data, page_params.page_number),
            )

        raise MalformedResponseError(
            message=f"Unexpected data type {type(data).__name__}",
            provider_name=self.name,
            chain_id=chain_id,
            raw_data=payload,
        )

    @staticmethod
    def _next_page(data: dict[str, Any], page_number: int) -> Optional[int]:
        """Next page number unless the response says there is none."""
        links = data.get("links")
        if isinstance(links, dict) and "next" in links and not links["next"]:
            return None
        pagination = data.get("pagination")
        if isinstance(pagination, dict) and pagination.get("has_more") is False:
            return None
        return page_number + 1

    def _unwrap(self, payload: Any, chain_id: Optional[int]) -> Any:
        """Unwrap the {"data": ..., "error": ...} envelope."""
        if not isinstance(payload, dict):
            raise MalformedResponseError(
                message="Response envelope is not an object",
                provider_name=self.name,
                chain_id=chain_id,
                raw_data=payload,
            )

        if payload.get("error"):
            provider_message = payload.get("error_message") or "Unknown Covalent error"
            raise ProviderRequestError(
                message=f"Covalent error: {provider_message}",
                provider_name=self.name,
                chain_id=chain_id,
                status_code=payload.get("error_code"),
                provider_message=provider_message,
            )

        return payload.get("data")

    async def fetch_transaction_details(
        self,
        chain_id: int,
        tx_hash: str,
    ) -> dict[str, Any]:
        """Fetch transaction_v3 with decoded log events."""
        self.require_credential(chain_id)

        url = f"{self._base_url}/{chain_id}/transaction_v3/{tx_hash}/"
        payload = await self._make_request(
            url,
            params=self._auth_params(),
            headers=self._auth_headers(),
            chain_id=chain_id,
        )
        data = self._unwrap(payload, chain_id)
        return data if isinstance(data, dict) else {"items": data or []}
