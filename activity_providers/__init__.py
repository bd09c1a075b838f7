"""
Activity Providers Package - Pluggable transaction-history layer.

Fetches raw wallet transaction records from interchangeable providers
across multiple EVM chains.

Features:
- Two provider dialects behind one fetch_page() contract
- Offset (page number) and cursor pagination
- Bounded concurrency across chains
- Partial chain failures absorbed, never raised

Quick Start:
    from activity_providers import (
        ProviderConfig,
        ProviderKind,
        create_provider,
        fetch_all_chains,
    )

    async def get_wallet_history(address: str):
        config = ProviderConfig(kind=ProviderKind.COVALENT, api_key="cqt_...")
        async with create_provider(config) as provider:
            results = await fetch_all_chains(provider, [1, 137], address)

        for result in results:
            print(result.chain_id, len(result.items), result.error)

Adding New Providers:
    class NewProvider(BaseActivityProvider):
        @property
        def name(self) -> str:
            return "new_provider"

        def default_base_url(self): ...
        async def _fetch_page(self, chain_id, address, page_params): ...
        async def fetch_transaction_details(self, chain_id, tx_hash): ...
"""

from activity_providers.base import BaseActivityProvider, mask_value
from activity_providers.chains import (
    CHAIN_BY_ID,
    DEFAULT_CHAIN_IDS,
    DEFAULT_CHAINS,
    EvmChain,
    chain_name,
    moralis_chain_param,
)
from activity_providers.exceptions import (
    ActivityProviderError,
    ConfigurationError,
    InvalidCredentialError,
    MalformedResponseError,
    MissingCredentialError,
    ProviderRequestError,
)
from activity_providers.factory import ProviderFactory, create_provider
from activity_providers.limiter import ConcurrencyLimiter
from activity_providers.models import (
    AuthMode,
    FetchResult,
    PageParams,
    ProviderConfig,
    ProviderKind,
    RawPage,
)
from activity_providers.orchestrator import fetch_all_chains
from activity_providers.pagination import fetch_all
from activity_providers.providers import CovalentProvider, MoralisProvider


__version__ = "1.0.0"

__all__ = [
    # Base
    "BaseActivityProvider",
    "mask_value",

    # Models
    "AuthMode",
    "FetchResult",
    "PageParams",
    "ProviderConfig",
    "ProviderKind",
    "RawPage",

    # Chains
    "CHAIN_BY_ID",
    "DEFAULT_CHAIN_IDS",
    "DEFAULT_CHAINS",
    "EvmChain",
    "chain_name",
    "moralis_chain_param",

    # Exceptions
    "ActivityProviderError",
    "ConfigurationError",
    "InvalidCredentialError",
    "MalformedResponseError",
    "MissingCredentialError",
    "ProviderRequestError",

    # Providers
    "CovalentProvider",
    "MoralisProvider",
    "ProviderFactory",
    "create_provider",

    # Fetching
    "ConcurrencyLimiter",
    "fetch_all",
    "fetch_all_chains",
]
