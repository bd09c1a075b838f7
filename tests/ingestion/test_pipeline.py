"""
Pipeline and CLI Tests.
"""

import json
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest

from activity_providers import (
    BaseActivityProvider,
    ConfigurationError,
    MissingCredentialError,
    ProviderKind,
    ProviderRequestError,
    RawPage,
)
from activity_ingestion import ActivityPipeline, ActivityType, PipelineConfig
from activity_ingestion.cli import build_configs, create_parser, main


ENV_KEYS = (
    "ACTIVITY_PROVIDER",
    "COVALENT_API_KEY",
    "MORALIS_API_KEY",
    "COVALENT_AUTH_MODE",
    "ACTIVITY_CONCURRENCY",
    "ACTIVITY_MAX_PAGES",
)


# ============================================================
# FIXTURES
# ============================================================

def raw_transfer(tx_hash, minutes, sender, receiver, eth, quote=None):
    record = {
        "tx_hash": tx_hash,
        "block_signed_at": f"2024-01-01T10:{minutes:02d}:00Z",
        "from_address": sender,
        "to_address": receiver,
        "value": str(int(Decimal(eth) * 10 ** 18)),
    }
    if quote is not None:
        record["value_quote"] = quote
    return record


class StaticProvider(BaseActivityProvider):
    """Provider serving one fixed page per chain."""

    def __init__(self, records_by_chain=None, failing=(), api_key="test-key"):
        super().__init__(api_key=api_key)
        self.records_by_chain = records_by_chain or {}
        self.failing = set(failing)
        self.requested: list[int] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "static"

    def default_base_url(self) -> str:
        return "http://static.invalid"

    async def _fetch_page(self, chain_id, address, page_params):
        self.requested.append(chain_id)
        if chain_id in self.failing:
            raise ProviderRequestError("HTTP 503", provider_name=self.name, chain_id=chain_id)
        return RawPage(self.records_by_chain.get(chain_id, []), continuation=None)

    async def fetch_transaction_details(self, chain_id, tx_hash):
        return {}

    async def close(self):
        self.closed = True


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every pipeline-related environment variable."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def relay_provider():
    """Chain 1 carries a relay hop, chain 137 a plain transfer, chain 56 fails."""
    return StaticProvider(
        {
            1: [
                raw_transfer("0xin", 0, "0xA", "0xRelay", "1.0", quote=2000.0),
                raw_transfer("0xout", 10, "0xRelay", "0xB", "0.995", quote=1990.0),
            ],
            137: [raw_transfer("0xpoly", 30, "0xC", "0xD", "5")],
        },
        failing={56},
    )


# ============================================================
# PIPELINE TESTS
# ============================================================

class TestActivityPipeline:
    """Tests for ActivityPipeline."""

    @pytest.mark.asyncio
    async def test_build_timeline(self, relay_provider):
        """Test fetch, normalize, merge and collapse end to end."""
        pipeline = ActivityPipeline(relay_provider, PipelineConfig(page_delay_seconds=0))

        result = await pipeline.build_timeline("0xwallet", [1, 56, 137])

        assert result.failed_chains == [56]
        assert [r.chain_id for r in result.fetch_results] == [1, 56, 137]
        assert len(result.activities) == 2

        newest, collapsed = result.activities
        assert newest.id == "137:0xpoly"
        assert collapsed.is_collapsed
        assert collapsed.from_address == "0xa"
        assert collapsed.to_address == "0xb"
        assert collapsed.amount == Decimal("0.995")
        assert collapsed.amount_usd == Decimal("1990.0")

    @pytest.mark.asyncio
    async def test_collapse_disabled(self, relay_provider):
        """Test the collapse step can be switched off."""
        config = PipelineConfig(page_delay_seconds=0, collapse_enabled=False)
        pipeline = ActivityPipeline(relay_provider, config)

        result = await pipeline.build_timeline("0xwallet", [1])

        assert [a.id for a in result.activities] == ["1:0xout", "1:0xin"]

    @pytest.mark.asyncio
    async def test_csv_merged_with_api(self):
        """Test a CSV row for an API hash keeps the higher USD value."""
        provider = StaticProvider({1: [raw_transfer("0xdup", 0, "0xA", "0xB", "1", quote=10.0)]})
        csv_text = (
            "Transaction Hash,DateTime,From,To,Value_IN,Value_OUT,CurrentValue,Method\n"
            "0xdup,2024-01-01T10:00:00Z,0xA,0xB,1,0,25,Transfer\n"
            "0xcsv,2024-01-01T09:00:00Z,0xE,0xF,2,0,4,Mint\n"
        )
        pipeline = ActivityPipeline(provider, PipelineConfig(page_delay_seconds=0))

        result = await pipeline.build_timeline("0xwallet", [1], csv_text=csv_text)

        assert result.csv_imported == 2
        by_hash = {a.tx_hash: a for a in result.activities}
        assert set(by_hash) == {"0xdup", "0xcsv"}
        assert by_hash["0xdup"].amount_usd == Decimal("25")
        assert by_hash["0xcsv"].type == ActivityType.MINT

    @pytest.mark.asyncio
    async def test_defaults_to_known_chains(self):
        """Test every known chain is requested when none are given."""
        provider = StaticProvider()
        pipeline = ActivityPipeline(provider, PipelineConfig(page_delay_seconds=0))

        result = await pipeline.build_timeline("0xwallet")

        assert sorted(provider.requested) == sorted([1, 56, 137, 10, 42161, 43114])
        assert result.activities == []

    @pytest.mark.asyncio
    async def test_missing_credential_raises(self):
        """Test a missing key fails the whole build."""
        pipeline = ActivityPipeline(StaticProvider(api_key=None))

        with pytest.raises(MissingCredentialError):
            await pipeline.build_timeline("0xwallet", [1])

    @pytest.mark.asyncio
    async def test_result_serializes(self, relay_provider):
        """Test TimelineResult.to_dict is JSON friendly."""
        pipeline = ActivityPipeline(relay_provider, PipelineConfig(page_delay_seconds=0))

        result = await pipeline.build_timeline("0xwallet", [1, 56])
        payload = json.loads(json.dumps(result.to_dict()))

        assert payload["chains"][1]["chain_id"] == 56
        assert payload["chains"][1]["records"] == 0
        assert "HTTP 503" in payload["chains"][1]["error"]
        assert payload["activities"][0]["meta"]["collapsed"] is True


class TestPipelineConfig:
    """Tests for PipelineConfig.from_env."""

    def test_defaults_per_provider(self, clean_env):
        """Test the page ceiling depends on the provider."""
        assert PipelineConfig.from_env(ProviderKind.COVALENT).max_pages == 3
        assert PipelineConfig.from_env(ProviderKind.MORALIS).max_pages == 10
        assert PipelineConfig.from_env().concurrency == 2

    def test_env_overrides(self, clean_env):
        """Test environment values override defaults."""
        clean_env.setenv("ACTIVITY_CONCURRENCY", "4")
        clean_env.setenv("ACTIVITY_MAX_PAGES", "7")

        config = PipelineConfig.from_env(ProviderKind.MORALIS)

        assert config.concurrency == 4
        assert config.max_pages == 7

    def test_invalid_integer(self, clean_env):
        """Test non-integer values raise ConfigurationError."""
        clean_env.setenv("ACTIVITY_CONCURRENCY", "lots")

        with pytest.raises(ConfigurationError) as exc_info:
            PipelineConfig.from_env()

        assert exc_info.value.config_key == "ACTIVITY_CONCURRENCY"


# ============================================================
# CLI TESTS
# ============================================================

class TestCli:
    """Tests for the activity-timeline command."""

    def test_build_configs_applies_overrides(self, clean_env):
        """Test CLI flags win over environment defaults."""
        args = create_parser().parse_args([
            "--address", "0xabc",
            "--provider", "moralis",
            "--api-key", "k-123",
            "--concurrency", "3",
            "--no-collapse",
            "--window-minutes", "15",
            "--tolerance", "0.05",
        ])

        provider_config, pipeline_config = build_configs(args)

        assert provider_config.kind == ProviderKind.MORALIS
        assert provider_config.api_key == "k-123"
        assert pipeline_config.concurrency == 3
        assert pipeline_config.max_pages == 10
        assert pipeline_config.collapse_enabled is False
        assert pipeline_config.collapse_window == timedelta(minutes=15)
        assert pipeline_config.collapse_tolerance == 0.05

    def test_missing_key_exit_code(self, clean_env):
        """Test the command exits with 2 when no key is configured."""
        with patch("activity_ingestion.cli.load_dotenv"):
            assert main(["--address", "0xabc", "--chains", "1"]) == 2

    def test_missing_csv_exit_code(self, clean_env, tmp_path):
        """Test an unreadable CSV path is logged and exits with 1."""
        clean_env.setenv("COVALENT_API_KEY", "ck")
        missing = tmp_path / "nope.csv"

        with patch("activity_ingestion.cli.load_dotenv"), \
                patch("activity_ingestion.cli.create_provider") as create:
            code = main(["--address", "0xabc", "--csv", str(missing)])

        assert code == 1
        create.assert_not_called()

    def test_undecodable_csv_exit_code(self, clean_env, tmp_path):
        """Test a non UTF-8 CSV export exits with 1."""
        clean_env.setenv("COVALENT_API_KEY", "ck")
        export = tmp_path / "export.csv"
        export.write_bytes(b"\xff\xfe\x00bad")

        with patch("activity_ingestion.cli.load_dotenv"):
            assert main(["--address", "0xabc", "--csv", str(export)]) == 1

    def test_writes_output_file(self, clean_env, tmp_path, relay_provider):
        """Test the timeline is written as JSON."""
        output = tmp_path / "timeline.json"

        with patch("activity_ingestion.cli.load_dotenv"), \
                patch("activity_ingestion.cli.create_provider", return_value=relay_provider):
            code = main(["--address", "0xabc", "--chains", "1", "137", "--output", str(output)])

        assert code == 0
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert len(payload["activities"]) == 2
        assert relay_provider.closed
