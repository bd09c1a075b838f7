"""
Providers package - Transaction-history provider implementations.
"""

from activity_providers.providers.covalent import CovalentProvider
from activity_providers.providers.moralis import MoralisProvider


__all__ = [
    "CovalentProvider",
    "MoralisProvider",
]
