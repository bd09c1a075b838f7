"""
Provider Factory.

============================================================
PURPOSE
============================================================
Selects the provider variant from configuration at construction
time. Callers only ever see BaseActivityProvider.

============================================================
USAGE
============================================================
```python
provider = ProviderFactory.create(ProviderConfig(kind=ProviderKind.MORALIS, api_key="..."))

# Or straight from the environment
provider = create_provider()
```

============================================================
"""

import logging
from typing import Optional, Type

import aiohttp

from activity_providers.base import BaseActivityProvider
from activity_providers.exceptions import ConfigurationError
from activity_providers.models import ProviderConfig, ProviderKind
from activity_providers.providers import CovalentProvider, MoralisProvider


logger = logging.getLogger(__name__)


class ProviderFactory:
    """Factory for creating transaction-history providers."""

    _registry: dict[ProviderKind, Type[BaseActivityProvider]] = {
        ProviderKind.COVALENT: CovalentProvider,
        ProviderKind.MORALIS: MoralisProvider,
    }

    @classmethod
    def list_supported(cls) -> list[str]:
        """List supported provider kinds."""
        return [kind.value for kind in cls._registry]

    @classmethod
    def create(
        cls,
        config: ProviderConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> BaseActivityProvider:
        """
        Create a provider.

        Args:
            config: Provider configuration
            session: Optional shared HTTP session

        Returns:
            BaseActivityProvider instance

        Raises:
            ConfigurationError: If the provider kind is not supported
        """
        try:
            kind = ProviderKind(config.kind)
        except ValueError as e:
            raise ConfigurationError(
                message=f"Unsupported provider: {config.kind}",
                config_key="kind",
                original_error=e,
            )

        provider_class = cls._registry.get(kind)
        if provider_class is None:
            raise ConfigurationError(
                message=f"Unsupported provider: {kind.value}",
                config_key="kind",
            )

        if kind == ProviderKind.MORALIS:
            provider = MoralisProvider(
                api_key=config.api_key,
                base_url=config.base_url,
                timeout=config.timeout_seconds,
                session=session,
            )
        else:
            provider = provider_class(
                api_key=config.api_key,
                base_url=config.base_url,
                auth_mode=config.auth_mode,
                auth_header=config.auth_header,
                auth_prefix=config.auth_prefix,
                timeout=config.timeout_seconds,
                session=session,
            )

        logger.info(f"Created provider '{provider.name}'")
        return provider


def create_provider(
    config: Optional[ProviderConfig] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> BaseActivityProvider:
    """Create a provider from config, defaulting to the environment."""
    return ProviderFactory.create(config or ProviderConfig.from_env(), session=session)
