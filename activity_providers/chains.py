"""
EVM chain registry - ids, display names and provider slugs.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class EvmChain:
    """A supported EVM chain."""
    id: int
    name: str
    short: str
    moralis_slug: Optional[str] = None


DEFAULT_CHAINS: tuple[EvmChain, ...] = (
    EvmChain(id=1, name="Ethereum", short="ETH", moralis_slug="eth"),
    EvmChain(id=56, name="BNB", short="BNB", moralis_slug="bsc"),
    EvmChain(id=137, name="Polygon", short="POL", moralis_slug="polygon"),
    EvmChain(id=10, name="Optimism", short="OP", moralis_slug="optimism"),
    EvmChain(id=42161, name="Arbitrum", short="ARB", moralis_slug="arbitrum"),
    EvmChain(id=43114, name="Avalanche", short="AVAX", moralis_slug="avalanche"),
)

DEFAULT_CHAIN_IDS: tuple[int, ...] = tuple(c.id for c in DEFAULT_CHAINS)

CHAIN_BY_ID: dict[int, EvmChain] = {c.id: c for c in DEFAULT_CHAINS}


def chain_name(chain_id: int) -> str:
    """Display name for a chain id, falling back to the numeric id."""
    chain = CHAIN_BY_ID.get(chain_id)
    return chain.name if chain else str(chain_id)


def moralis_chain_param(chain_id: int) -> str:
    """Chain parameter for the cursor provider: known slug or hex chain id."""
    chain = CHAIN_BY_ID.get(chain_id)
    if chain and chain.moralis_slug:
        return chain.moralis_slug
    return hex(chain_id)
