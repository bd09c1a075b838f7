"""
Moralis Provider - Cursor-paginated wallet history.

Endpoint:
    GET {base}/wallets/{address}/history
        ?chain=eth&limit=N&order=DESC&include=...[&cursor=...]
    Header: X-API-Key

Records are mapped onto the same raw shape the Covalent provider returns,
so the normalizer never branches on provider.
"""

import logging
from typing import Any, Optional

import aiohttp

from activity_providers.base import BaseActivityProvider
from activity_providers.chains import moralis_chain_param
from activity_providers.exceptions import MalformedResponseError
from activity_providers.models import AuthMode, PageParams, RawPage


logger = logging.getLogger(__name__)


def _first_number(*values: Any) -> Optional[float]:
    for value in values:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
    return None


def map_erc20_transfer(transfer: dict[str, Any]) -> dict[str, Any]:
    """Map a Moralis ERC-20 transfer onto the Covalent transfer shape."""
    decimals = transfer.get("token_decimals", transfer.get("decimals"))
    return {
        "from_address": transfer.get("from_address"),
        "to_address": transfer.get("to_address"),
        "token_symbol": transfer.get("token_symbol") or transfer.get("symbol"),
        "token_decimals": decimals if decimals not in (None, "") else 18,
        "token_address": transfer.get("address") or transfer.get("token_address"),
        "value": transfer.get("value"),
        "value_decimal": _first_number(transfer.get("value_decimal")),
    }


def map_history_item(item: dict[str, Any]) -> dict[str, Any]:
    """Map one Moralis wallet-history entry onto the Covalent record shape."""
    transfers = item.get("erc20_transfers")
    return {
        "tx_hash": item.get("hash") or item.get("transaction_hash") or item.get("tx_hash"),
        "block_signed_at": item.get("block_timestamp") or item.get("block_signed_at"),
        "from_address": item.get("from_address"),
        "to_address": item.get("to_address"),
        "value": item.get("value"),
        "value_quote": _first_number(item.get("value_usd"), item.get("value_quote")),
        "erc20_transfers": (
            [map_erc20_transfer(t) for t in transfers if isinstance(t, dict)]
            if isinstance(transfers, list)
            else None
        ),
    }


class MoralisProvider(BaseActivityProvider):
    """
    Cursor-style provider ("cursor" + "limit").

    The opaque server cursor is the continuation.
    """

    BASE_URL = "https://deep-index.moralis.io/api/v2.2"
    MIN_LIMIT = 10
    MAX_LIMIT = 100
    INCLUDE = "internal_transactions,erc20_transfers,nft_transfers"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = BaseActivityProvider.DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(
            api_key=api_key,
            base_url=base_url,
            auth_mode=AuthMode.HEADER,
            auth_header="X-API-Key",
            auth_prefix="",
            timeout=timeout,
            session=session,
        )

    @property
    def name(self) -> str:
        """Unique identifier."""
        return "moralis"

    def default_base_url(self) -> str:
        return self.BASE_URL

    def _clamp_limit(self, page_size: int) -> int:
        return min(max(page_size, self.MIN_LIMIT), self.MAX_LIMIT)

    def effective_page_size(self, page_size: int) -> int:
        """The limit sent upstream, clamped to [MIN_LIMIT, MAX_LIMIT]."""
        return self._clamp_limit(page_size)

    async def _fetch_page(
        self,
        chain_id: int,
        address: str,
        page_params: PageParams,
    ) -> RawPage:
        """Fetch one wallet-history page."""
        params: dict[str, Any] = {
            "chain": moralis_chain_param(chain_id),
            "limit": str(self._clamp_limit(page_params.page_size)),
            "order": "DESC",
            "include": self.INCLUDE,
        }
        if page_params.cursor:
            params["cursor"] = page_params.cursor

        url = f"{self._base_url}/wallets/{address}/history"
        payload = await self._make_request(
            url,
            params=params,
            headers=self._auth_headers(),
            chain_id=chain_id,
        )

        if not isinstance(payload, dict):
            raise MalformedResponseError(
                message="Response envelope is not an object",
                provider_name=self.name,
                chain_id=chain_id,
                raw_data=payload,
            )

        result = payload.get("result") or payload.get("data") or []
        if not isinstance(result, list):
            raise MalformedResponseError(
                message="'result' is not a list",
                provider_name=self.name,
                chain_id=chain_id,
                raw_data=payload,
            )

        records = [map_history_item(item) for item in result if isinstance(item, dict)]
        cursor = payload.get("cursor") or payload.get("next") or None
        return RawPage(records=records, continuation=cursor)

    async def fetch_transaction_details(
        self,
        chain_id: int,
        tx_hash: str,
    ) -> dict[str, Any]:
        """Fetch a decoded transaction."""
        self.require_credential(chain_id)

        url = f"{self._base_url}/transaction/{tx_hash}"
        payload = await self._make_request(
            url,
            params={"chain": moralis_chain_param(chain_id)},
            headers=self._auth_headers(),
            chain_id=chain_id,
        )
        if isinstance(payload, dict):
            inner = payload.get("result", payload.get("data"))
            if isinstance(inner, dict):
                return inner
            return payload
        raise MalformedResponseError(
            message="Transaction payload is not an object",
            provider_name=self.name,
            chain_id=chain_id,
            raw_data=payload,
        )
