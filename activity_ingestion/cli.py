"""
Activity Ingestion - CLI.

============================================================
USAGE
============================================================
python -m activity_ingestion.cli --address 0xabc...
python -m activity_ingestion.cli --address 0xabc... --chains 1 137 --provider moralis
python -m activity_ingestion.cli --address 0xabc... --csv export.csv --no-collapse

The API key is read from COVALENT_API_KEY / MORALIS_API_KEY (a .env
file is honored) or passed with --api-key.

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from activity_providers import (
    ActivityProviderError,
    MissingCredentialError,
    ProviderConfig,
    ProviderKind,
    create_provider,
)
from activity_ingestion.pipeline import ActivityPipeline, PipelineConfig, TimelineResult


logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="activity-timeline",
        description="Build a normalized multi-chain activity timeline for a wallet",
    )
    parser.add_argument("--address", "-a", required=True, help="Wallet address")
    parser.add_argument(
        "--chains", "-c",
        type=int,
        nargs="+",
        default=None,
        help="Chain ids to fetch (default: all known chains)",
    )
    parser.add_argument(
        "--provider", "-p",
        choices=[k.value for k in ProviderKind],
        default=None,
        help="Provider (default: ACTIVITY_PROVIDER or covalent)",
    )
    parser.add_argument("--api-key", default=None, help="Provider API key")

    # --------------------------------------------------------
    # CSV import
    # --------------------------------------------------------
    csv_group = parser.add_argument_group("CSV Import")
    csv_group.add_argument("--csv", type=Path, default=None, help="Block-explorer CSV export")
    csv_group.add_argument("--csv-chain", type=int, default=1, help="Chain id of the CSV export")

    # --------------------------------------------------------
    # Tuning
    # --------------------------------------------------------
    tuning_group = parser.add_argument_group("Tuning")
    tuning_group.add_argument("--concurrency", type=int, default=None)
    tuning_group.add_argument("--max-pages", type=int, default=None)
    tuning_group.add_argument("--page-size", type=int, default=None)
    tuning_group.add_argument("--no-collapse", action="store_true", help="Disable pass-through collapsing")
    tuning_group.add_argument("--window-minutes", type=float, default=None)
    tuning_group.add_argument("--tolerance", type=float, default=None)

    parser.add_argument("--output", "-o", type=Path, default=None, help="Write JSON here instead of stdout")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    return parser


def build_configs(args: argparse.Namespace) -> tuple[ProviderConfig, PipelineConfig]:
    """Combine environment defaults with CLI overrides."""
    provider_config = ProviderConfig.from_env(args.provider)
    if args.api_key:
        provider_config.api_key = args.api_key

    pipeline_config = PipelineConfig.from_env(provider_config.kind)
    if args.concurrency is not None:
        pipeline_config.concurrency = args.concurrency
    if args.max_pages is not None:
        pipeline_config.max_pages = args.max_pages
    if args.page_size is not None:
        pipeline_config.page_size = args.page_size
    if args.no_collapse:
        pipeline_config.collapse_enabled = False
    if args.window_minutes is not None:
        pipeline_config.collapse_window = timedelta(minutes=args.window_minutes)
    if args.tolerance is not None:
        pipeline_config.collapse_tolerance = args.tolerance

    return provider_config, pipeline_config


async def run(args: argparse.Namespace, csv_text: Optional[str] = None) -> TimelineResult:
    """Run one timeline build."""
    provider_config, pipeline_config = build_configs(args)

    async with create_provider(provider_config) as provider:
        pipeline = ActivityPipeline(provider, pipeline_config)
        return await pipeline.build_timeline(
            args.address,
            chain_ids=args.chains,
            csv_text=csv_text,
            csv_chain_id=args.csv_chain,
        )


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    load_dotenv()
    args = create_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-5s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        csv_text = args.csv.read_text(encoding="utf-8") if args.csv else None
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Cannot read CSV export {args.csv}: {e}")
        return 1

    try:
        result = asyncio.run(run(args, csv_text))
    except MissingCredentialError as e:
        logger.error(f"{e.message}. Set COVALENT_API_KEY / MORALIS_API_KEY or pass --api-key.")
        return 2
    except ActivityProviderError as e:
        logger.error(str(e))
        return 1

    payload = json.dumps(result.to_dict(), indent=2)
    if args.output:
        args.output.write_text(payload, encoding="utf-8")
        logger.info(f"Wrote {len(result.activities)} activities to {args.output}")
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
