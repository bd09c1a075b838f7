"""
Activity Provider Models - Paging, configuration and per-chain results.

Raw records stay provider-shaped dictionaries until the normalizer in
activity_ingestion turns them into Activity objects.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from activity_providers.exceptions import ConfigurationError


Continuation = Union[int, str]


class ProviderKind(str, Enum):
    """Interchangeable transaction-history providers."""
    COVALENT = "covalent"
    MORALIS = "moralis"


class AuthMode(str, Enum):
    """Where the credential is attached to a request."""
    QUERY = "query"
    HEADER = "header"


@dataclass(frozen=True)
class PageParams:
    """
    Parameters for one page request.

    Offset providers read page_number, cursor providers read cursor.
    Both read page_size.
    """
    page_size: int = 100
    page_number: int = 0
    cursor: Optional[str] = None

    def advance(self, continuation: Continuation) -> "PageParams":
        """Build the params for the page after this one."""
        if isinstance(continuation, int):
            return PageParams(page_size=self.page_size, page_number=continuation)
        return PageParams(
            page_size=self.page_size,
            page_number=self.page_number + 1,
            cursor=continuation,
        )


@dataclass
class RawPage:
    """One page of provider records plus an optional continuation token."""
    records: list[dict[str, Any]] = field(default_factory=list)
    continuation: Optional[Continuation] = None

    def has_more(self, page_size: int) -> bool:
        """More data is available only with a continuation AND a full page."""
        return self.continuation is not None and len(self.records) >= page_size

    @classmethod
    def empty(cls) -> "RawPage":
        """Terminal page with no records."""
        return cls(records=[], continuation=None)


@dataclass
class FetchResult:
    """
    Outcome of fetching one chain.

    Always present, even when the fetch failed; error carries the
    absorbed failure for reporting.
    """
    chain_id: int
    items: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        """True when the chain fetch completed without error."""
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "chain_id": self.chain_id,
            "items": self.items,
            "error": self.error,
        }


@dataclass
class ProviderConfig:
    """
    Configuration for a transaction-history provider.

    The credential is supplied by the caller; from_env() is a convenience
    for command-line use.
    """
    kind: ProviderKind = ProviderKind.COVALENT
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    auth_mode: AuthMode = AuthMode.QUERY
    auth_header: str = "Authorization"
    auth_prefix: str = "Bearer "
    timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls, kind: Optional[str] = None) -> "ProviderConfig":
        """
        Create config from environment variables.

        Args:
            kind: Provider kind override (defaults to ACTIVITY_PROVIDER)

        Returns:
            ProviderConfig
        """
        raw_kind = (kind or os.environ.get("ACTIVITY_PROVIDER") or "covalent").lower()
        try:
            provider = ProviderKind(raw_kind)
        except ValueError as e:
            raise ConfigurationError(
                message=f"Unknown provider '{raw_kind}'",
                config_key="ACTIVITY_PROVIDER",
                original_error=e,
            )

        if provider == ProviderKind.MORALIS:
            return cls(
                kind=provider,
                api_key=os.environ.get("MORALIS_API_KEY"),
                base_url=os.environ.get("MORALIS_BASE_URL"),
                auth_mode=AuthMode.HEADER,
                auth_header="X-API-Key",
                auth_prefix="",
            )

        raw_mode = (os.environ.get("COVALENT_AUTH_MODE") or "query").lower()
        try:
            auth_mode = AuthMode(raw_mode)
        except ValueError as e:
            raise ConfigurationError(
                message=f"Unknown auth mode '{raw_mode}'",
                config_key="COVALENT_AUTH_MODE",
                original_error=e,
            )

        return cls(
            kind=provider,
            api_key=os.environ.get("COVALENT_API_KEY"),
            base_url=os.environ.get("COVALENT_BASE_URL"),
            auth_mode=auth_mode,
            auth_header=os.environ.get("COVALENT_AUTH_HEADER", "Authorization"),
            auth_prefix=os.environ.get("COVALENT_AUTH_PREFIX", "Bearer "),
        )
