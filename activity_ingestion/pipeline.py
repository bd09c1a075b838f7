"""
Data Ingestion - Activity Pipeline.

============================================================
RESPONSIBILITY
============================================================
Single entry point turning a wallet address into a normalized,
deduplicated, optionally collapsed activity timeline.

============================================================
WORKFLOW
============================================================
1. Fetch raw records for every chain (bounded concurrency)
2. Normalize each chain's records into Activities
3. Import the optional CSV export
4. Merge API and CSV activities, dedup by id and tx hash
5. Collapse pass-through hops (unless disabled)

============================================================
DESIGN PRINCIPLES
============================================================
- Failure isolation between chains
- Nothing persisted beyond the call
- Missing credential fails the run immediately

============================================================
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Optional, Sequence

from activity_providers import (
    DEFAULT_CHAIN_IDS,
    BaseActivityProvider,
    FetchResult,
    ProviderKind,
    fetch_all_chains,
)
from activity_providers.exceptions import ConfigurationError
from activity_ingestion.collapse import (
    DEFAULT_AMOUNT_TOLERANCE,
    DEFAULT_WINDOW,
    collapse_pass_through,
)
from activity_ingestion.csv_importer import import_tabular
from activity_ingestion.merge import merge_activities
from activity_ingestion.models import Activity
from activity_ingestion.normalizer import normalize_records


logger = logging.getLogger(__name__)


# ============================================================
# CONFIGURATION
# ============================================================


DEFAULT_MAX_PAGES_BY_PROVIDER = {
    ProviderKind.COVALENT: 3,
    ProviderKind.MORALIS: 10,
}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            message=f"{name} must be an integer, got '{raw}'",
            config_key=name,
            original_error=e,
        )


@dataclass
class PipelineConfig:
    """Configuration for one timeline build."""

    # Fetching
    concurrency: int = 2
    page_size: int = 100
    max_pages: int = 3
    page_delay_seconds: float = 0.2

    # Collapsing
    collapse_enabled: bool = True
    collapse_window: timedelta = DEFAULT_WINDOW
    collapse_tolerance: float = DEFAULT_AMOUNT_TOLERANCE

    @classmethod
    def from_env(cls, provider_kind: ProviderKind = ProviderKind.COVALENT) -> "PipelineConfig":
        """
        Create config from environment variables.

        Args:
            provider_kind: Provider in use; picks the default page ceiling

        Returns:
            PipelineConfig
        """
        return cls(
            concurrency=_env_int("ACTIVITY_CONCURRENCY", 2),
            max_pages=_env_int(
                "ACTIVITY_MAX_PAGES",
                DEFAULT_MAX_PAGES_BY_PROVIDER.get(ProviderKind(provider_kind), 3),
            ),
        )


@dataclass
class TimelineResult:
    """Timeline plus the per-chain fetch outcomes that produced it."""

    activities: list[Activity] = field(default_factory=list)
    fetch_results: list[FetchResult] = field(default_factory=list)
    csv_imported: int = 0

    @property
    def failed_chains(self) -> list[int]:
        """Chain ids whose fetch failed and were recovered as empty."""
        return [r.chain_id for r in self.fetch_results if not r.ok]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "activities": [a.to_dict() for a in self.activities],
            "chains": [
                {"chain_id": r.chain_id, "records": len(r.items), "error": r.error}
                for r in self.fetch_results
            ],
            "csv_imported": self.csv_imported,
        }


# ============================================================
# PIPELINE
# ============================================================


class ActivityPipeline:
    """
    Builds activity timelines from a provider and optional CSV exports.

    Usage:
        async with create_provider(config) as provider:
            pipeline = ActivityPipeline(provider, PipelineConfig())
            result = await pipeline.build_timeline("0xabc...", [1, 137])
    """

    def __init__(
        self,
        provider: BaseActivityProvider,
        config: Optional[PipelineConfig] = None,
    ) -> None:
        self._provider = provider
        self._config = config or PipelineConfig()

    @property
    def config(self) -> PipelineConfig:
        return self._config

    async def fetch_activities(
        self,
        address: str,
        chain_ids: Sequence[int],
    ) -> tuple[list[Activity], list[FetchResult]]:
        """Fetch and normalize activities for every chain."""
        results = await fetch_all_chains(
            self._provider,
            chain_ids,
            address,
            concurrency=self._config.concurrency,
            page_size=self._config.page_size,
            max_pages=self._config.max_pages,
            page_delay=self._config.page_delay_seconds,
        )

        activities: list[Activity] = []
        for result in results:
            activities.extend(normalize_records(result.items, result.chain_id))
        return activities, results

    def finalize(
        self,
        api_activities: list[Activity],
        file_activities: list[Activity],
    ) -> list[Activity]:
        """Merge both sources and apply pass-through collapsing."""
        merged = merge_activities(api_activities, file_activities)
        if not self._config.collapse_enabled:
            return merged
        return collapse_pass_through(
            merged,
            window=self._config.collapse_window,
            amount_tolerance=self._config.collapse_tolerance,
        )

    async def build_timeline(
        self,
        address: str,
        chain_ids: Optional[Sequence[int]] = None,
        csv_text: Optional[str] = None,
        csv_chain_id: int = 1,
    ) -> TimelineResult:
        """
        Build the full activity timeline for a wallet.

        Args:
            address: Wallet address
            chain_ids: Chains to fetch (defaults to all known chains)
            csv_text: Optional block-explorer CSV export
            csv_chain_id: Chain the CSV export belongs to

        Returns:
            TimelineResult with activities newest first
        """
        chains = list(chain_ids) if chain_ids else list(DEFAULT_CHAIN_IDS)
        logger.info(f"Building timeline for {address} on chains {chains}")

        api_activities, fetch_results = await self.fetch_activities(address, chains)
        file_activities = import_tabular(csv_text, csv_chain_id) if csv_text else []

        activities = self.finalize(api_activities, file_activities)

        logger.info(
            f"Timeline for {address}: {len(activities)} activities "
            f"({len(api_activities)} from API, {len(file_activities)} from CSV)"
        )
        return TimelineResult(
            activities=activities,
            fetch_results=fetch_results,
            csv_imported=len(file_activities),
        )
