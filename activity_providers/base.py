"""
Base Activity Provider - Abstract interface for transaction-history providers.

All providers MUST:
- Fail fast with MissingCredentialError before touching the network
- Surface non-2xx responses as ProviderRequestError
- Remap 401/403 to InvalidCredentialError
- Treat an unparseable page as an empty, terminal page
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import aiohttp

from activity_providers.exceptions import (
    InvalidCredentialError,
    MalformedResponseError,
    MissingCredentialError,
    ProviderRequestError,
)
from activity_providers.models import AuthMode, PageParams, RawPage


logger = logging.getLogger(__name__)


def mask_value(value: Optional[str], show_chars: int = 4) -> str:
    """
    Mask a sensitive value, showing only first few chars.

    Args:
        value: Value to mask
        show_chars: Number of chars to show at start

    Returns:
        Masked value
    """
    if not value or len(value) <= show_chars:
        return "***"
    return f"{value[:show_chars]}...***"


class BaseActivityProvider(ABC):
    """
    Abstract base class for all transaction-history providers.

    Each provider must:
    1. Implement _fetch_page() - Get one page of raw records
    2. Implement fetch_transaction_details() - Decoded single transaction
    3. Implement name - Unique identifier

    fetch_page() wraps _fetch_page() with the credential precondition and
    the malformed-payload recovery, so every variant shares one contract.
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        auth_mode: AuthMode = AuthMode.QUERY,
        auth_header: str = "Authorization",
        auth_prefix: str = "Bearer ",
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._api_key = api_key or ""
        self._base_url = (base_url or self.default_base_url()).rstrip("/")
        self._auth_mode = auth_mode
        self._auth_header = auth_header
        self._auth_prefix = auth_prefix
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._requests_made = 0
        self._last_latency_ms: Optional[float] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this provider."""
        pass

    @abstractmethod
    def default_base_url(self) -> str:
        """Base URL used when none is configured."""
        pass

    @abstractmethod
    async def _fetch_page(
        self,
        chain_id: int,
        address: str,
        page_params: PageParams,
    ) -> RawPage:
        """
        Fetch one page of raw records from the provider.

        Raises:
            ProviderRequestError: On HTTP or transport failure
            MalformedResponseError: On an unparseable payload
        """
        pass

    @abstractmethod
    async def fetch_transaction_details(
        self,
        chain_id: int,
        tx_hash: str,
    ) -> dict[str, Any]:
        """Fetch a single transaction including its decoded log events."""
        pass

    @property
    def api_key(self) -> str:
        """Credential in use (read-only during a batch)."""
        return self._api_key

    def require_credential(self, chain_id: Optional[int] = None) -> str:
        """Return the credential or raise MissingCredentialError."""
        if not self._api_key:
            raise MissingCredentialError(
                message="API key missing; supply one before fetching",
                provider_name=self.name,
                chain_id=chain_id,
            )
        return self._api_key

    def effective_page_size(self, page_size: int) -> int:
        """Records per page the provider actually requests for page_size."""
        return page_size

    async def fetch_page(
        self,
        chain_id: int,
        address: str,
        page_params: Optional[PageParams] = None,
    ) -> RawPage:
        """
        Fetch one page of raw transaction records (main entry point).

        Args:
            chain_id: Numeric chain id
            address: Wallet address
            page_params: Page index/size or cursor/limit

        Returns:
            RawPage with records and an optional continuation token
        """
        self.require_credential(chain_id)
        params = page_params or PageParams()

        try:
            page = await self._fetch_page(chain_id, address, params)
        except MalformedResponseError as e:
            e.chain_id = chain_id
            logger.warning(f"[{self.name}] Malformed page treated as empty: {e}")
            return RawPage.empty()

        logger.debug(
            f"[{self.name}] chain={chain_id} page={params.page_number} "
            f"records={len(page.records)} more={page.continuation is not None}"
        )
        return page

    # ─────────────────────────────────────────────────────────────
    # Authentication
    # ─────────────────────────────────────────────────────────────

    def _auth_params(self) -> dict[str, str]:
        """Query parameters carrying the credential, if in query mode."""
        if self._auth_mode == AuthMode.QUERY:
            return {"key": self._api_key}
        return {}

    def _auth_headers(self) -> dict[str, str]:
        """Headers carrying the credential, if in header mode."""
        if self._auth_mode == AuthMode.HEADER:
            return {self._auth_header: f"{self._auth_prefix}{self._api_key}"}
        return {}

    # ─────────────────────────────────────────────────────────────
    # HTTP Helpers
    # ─────────────────────────────────────────────────────────────

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> dict[str, str]:
        """Get default HTTP headers."""
        return {
            "Accept": "application/json",
            "User-Agent": "WalletActivityIngestion/1.0",
        }

    @staticmethod
    def _extract_error_message(body: str) -> Optional[str]:
        """Pull a provider-supplied message out of an error body."""
        try:
            payload = json.loads(body)
        except (TypeError, ValueError):
            return None
        if not isinstance(payload, dict):
            return None
        for key in ("error_message", "message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
        return None

    async def _make_request(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        chain_id: Optional[int] = None,
    ) -> Any:
        """Make a GET request and decode the JSON body."""
        session = await self._get_session()
        self._requests_made += 1

        start_time = time.time()
        try:
            async with session.get(url, params=params, headers=headers) as response:
                self._last_latency_ms = (time.time() - start_time) * 1000
                body = await response.text()

                if response.status < 200 or response.status >= 300:
                    provider_message = self._extract_error_message(body)
                    error_cls = (
                        InvalidCredentialError
                        if response.status in (401, 403)
                        else ProviderRequestError
                    )
                    message = (
                        "Credential invalid or not authorized"
                        if error_cls is InvalidCredentialError
                        else f"HTTP {response.status}"
                    )
                    if provider_message:
                        message = f"{message}: {provider_message}"
                    raise error_cls(
                        message=message,
                        provider_name=self.name,
                        chain_id=chain_id,
                        status_code=response.status,
                        provider_message=provider_message,
                        request_url=url,
                    )

        except aiohttp.ClientError as e:
            raise ProviderRequestError(
                message=f"Connection error: {e}",
                provider_name=self.name,
                chain_id=chain_id,
                request_url=url,
                original_error=e,
            )

        try:
            return json.loads(body)
        except ValueError as e:
            raise MalformedResponseError(
                message="Response body is not valid JSON",
                provider_name=self.name,
                chain_id=chain_id,
                raw_data=body,
                original_error=e,
            )

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    def get_stats(self) -> dict[str, Any]:
        """Get request statistics."""
        return {
            "provider": self.name,
            "requests_made": self._requests_made,
            "last_latency_ms": self._last_latency_ms,
            "api_key": mask_value(self._api_key),
        }

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "BaseActivityProvider":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name}, key={mask_value(self._api_key)})>"
