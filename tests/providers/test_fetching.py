"""
Fetching Tests - limiter, multi-page fetcher and multi-chain orchestrator.
"""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest

from activity_providers import (
    BaseActivityProvider,
    ConcurrencyLimiter,
    MissingCredentialError,
    MoralisProvider,
    PageParams,
    ProviderRequestError,
    RawPage,
    fetch_all,
    fetch_all_chains,
)


# ============================================================
# FIXTURES
# ============================================================

def make_records(count, prefix="0x"):
    return [{"tx_hash": f"{prefix}{i}"} for i in range(count)]


class ScriptedProvider(BaseActivityProvider):
    """Provider replaying scripted pages per chain."""

    def __init__(self, pages_by_chain=None, failing=(), api_key="test-key", delay=0.0):
        super().__init__(api_key=api_key)
        self.pages_by_chain = pages_by_chain or {}
        self.failing = set(failing)
        self.delay = delay
        self.calls: list[tuple[int, PageParams]] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    @property
    def name(self) -> str:
        return "scripted"

    def default_base_url(self) -> str:
        return "http://scripted.invalid"

    async def _fetch_page(self, chain_id, address, page_params):
        self.calls.append((chain_id, page_params))
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if chain_id in self.failing:
                raise ProviderRequestError(
                    "HTTP 500",
                    provider_name=self.name,
                    chain_id=chain_id,
                    status_code=500,
                )
            pages = self.pages_by_chain.get(chain_id, [])
            index = sum(1 for c, _ in self.calls if c == chain_id) - 1
            return pages[index] if index < len(pages) else RawPage.empty()
        finally:
            self.in_flight -= 1

    async def fetch_transaction_details(self, chain_id, tx_hash):
        return {}


class HistoryResponse:
    """Async-context-manager response carrying one JSON body."""

    def __init__(self, body):
        self.status = 200
        self._text = json.dumps(body)

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class HistorySession:
    """Replays queued history pages and records request params."""

    def __init__(self, *bodies):
        self.responses = [HistoryResponse(body) for body in bodies]
        self.params = []
        self.closed = False

    def get(self, url, params=None, headers=None):
        self.params.append(dict(params or {}))
        return self.responses.pop(0)

    async def close(self):
        self.closed = True


def history_page(count, cursor, prefix="0x"):
    return {"result": [{"hash": f"{prefix}{i}"} for i in range(count)], "cursor": cursor}


# ============================================================
# LIMITER TESTS
# ============================================================

class TestConcurrencyLimiter:
    """Tests for ConcurrencyLimiter."""

    def test_rejects_zero_limit(self):
        """Test that a limit below one is rejected."""
        with pytest.raises(ValueError):
            ConcurrencyLimiter(0)

    @pytest.mark.asyncio
    async def test_caps_concurrency(self):
        """Test no more than N tasks run at once."""
        limiter = ConcurrencyLimiter(2)

        async def work():
            await asyncio.sleep(0.01)
            return limiter.active

        results = await asyncio.gather(*(limiter.run(work) for _ in range(6)))

        assert limiter.peak == 2
        assert max(results) <= 2
        assert limiter.active == 0

    @pytest.mark.asyncio
    async def test_fifo_admission(self):
        """Test queued tasks start in submission order."""
        limiter = ConcurrencyLimiter(1)
        started: list[int] = []

        def make(i):
            async def work():
                started.append(i)
                await asyncio.sleep(0)
                return i
            return work

        results = await asyncio.gather(*(limiter.run(make(i)) for i in range(5)))

        assert started == [0, 1, 2, 3, 4]
        assert results == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_late_arrival_waits_behind_queue(self):
        """Test a task submitted as a slot frees up does not jump the queue."""
        limiter = ConcurrencyLimiter(1)
        release = asyncio.Event()
        started: list[str] = []

        def make(label, gate=None):
            async def work():
                started.append(label)
                if gate is not None:
                    await gate.wait()
            return work

        holder = asyncio.create_task(limiter.run(make("holder", release)))
        await asyncio.sleep(0)
        queued = asyncio.create_task(limiter.run(make("queued")))
        await asyncio.sleep(0)

        release.set()
        await holder
        late = asyncio.create_task(limiter.run(make("late")))
        await asyncio.gather(queued, late)

        assert started == ["holder", "queued", "late"]

    @pytest.mark.asyncio
    async def test_failure_releases_slot(self):
        """Test a raising task frees its slot for the next one."""
        limiter = ConcurrencyLimiter(1)

        async def boom():
            raise RuntimeError("boom")

        async def ok():
            return "ok"

        results = await asyncio.gather(
            limiter.run(boom),
            limiter(ok),
            return_exceptions=True,
        )

        assert isinstance(results[0], RuntimeError)
        assert results[1] == "ok"
        assert limiter.active == 0


# ============================================================
# MULTI-PAGE FETCHER TESTS
# ============================================================

class TestFetchAll:
    """Tests for the multi-page fetcher."""

    @pytest.mark.asyncio
    async def test_stops_on_short_page(self):
        """Test a page shorter than page_size ends pagination early."""
        provider = ScriptedProvider({
            1: [
                RawPage(make_records(100, "0xa"), continuation=1),
                RawPage(make_records(40, "0xb"), continuation=2),
                RawPage(make_records(100, "0xc"), continuation=3),
            ]
        })

        records = await fetch_all(provider, 1, "0xw", page_size=100, max_pages=10, page_delay=0)

        assert len(records) == 140
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_stops_at_max_pages(self):
        """Test the page ceiling caps requests."""
        provider = ScriptedProvider({
            1: [RawPage(make_records(10, f"0x{i}-"), continuation=i + 1) for i in range(5)]
        })

        records = await fetch_all(provider, 1, "0xw", page_size=10, max_pages=3, page_delay=0)

        assert len(records) == 30
        assert len(provider.calls) == 3

    @pytest.mark.asyncio
    async def test_stops_when_continuation_exhausted(self):
        """Test a full page without continuation is the last one."""
        provider = ScriptedProvider({
            1: [
                RawPage(make_records(10), continuation="cursor-1"),
                RawPage(make_records(10, "0xz"), continuation=None),
            ]
        })

        records = await fetch_all(provider, 1, "0xw", page_size=10, max_pages=10, page_delay=0)

        assert len(records) == 20
        assert provider.calls[1][1].cursor == "cursor-1"

    @pytest.mark.asyncio
    async def test_offset_continuation_advances_page_number(self):
        """Test numeric continuations become the next page number."""
        provider = ScriptedProvider({
            1: [
                RawPage(make_records(5), continuation=1),
                RawPage(make_records(5, "0xq"), continuation=2),
                RawPage([], continuation=3),
            ]
        })

        await fetch_all(provider, 1, "0xw", page_size=5, max_pages=10, page_delay=0)

        assert [params.page_number for _, params in provider.calls] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_failure_propagates_without_retry(self):
        """Test a failed page is raised immediately and not retried."""
        provider = ScriptedProvider(failing={1})

        with pytest.raises(ProviderRequestError):
            await fetch_all(provider, 1, "0xw", page_size=10, page_delay=0)

        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_paces_between_pages(self):
        """Test the pacing delay is applied between page requests only."""
        provider = ScriptedProvider({
            1: [
                RawPage(make_records(2), continuation=1),
                RawPage(make_records(2, "0xb"), continuation=2),
                RawPage(make_records(1, "0xc"), continuation=3),
            ]
        })
        sleep = AsyncMock()

        with patch("activity_providers.pagination.asyncio.sleep", sleep):
            await fetch_all(provider, 1, "0xw", page_size=2, max_pages=10, page_delay=0.2)

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.2)

    @pytest.mark.asyncio
    async def test_clamped_limit_counts_as_full_page(self):
        """Test a page filled to the provider's clamped limit keeps paging."""
        session = HistorySession(
            history_page(100, "c1", "0xa"),
            history_page(100, "c2", "0xb"),
            history_page(5, None, "0xc"),
        )
        provider = MoralisProvider(api_key="mk", session=session)

        records = await fetch_all(provider, 1, "0xw", page_size=200, max_pages=10, page_delay=0)

        assert len(records) == 205
        assert [p["limit"] for p in session.params] == ["100", "100", "100"]
        assert [p.get("cursor") for p in session.params] == [None, "c1", "c2"]

    def test_effective_page_size(self):
        """Test only clamping providers change the requested page size."""
        assert MoralisProvider(api_key="mk").effective_page_size(200) == 100
        assert MoralisProvider(api_key="mk").effective_page_size(5) == 10
        assert ScriptedProvider().effective_page_size(200) == 200


# ============================================================
# ORCHESTRATOR TESTS
# ============================================================

class TestFetchAllChains:
    """Tests for the multi-chain orchestrator."""

    @pytest.mark.asyncio
    async def test_one_result_per_chain_with_failures(self):
        """Test failed chains are recovered as empty results."""
        provider = ScriptedProvider(
            {
                1: [RawPage(make_records(3), continuation=None)],
                137: [RawPage(make_records(2), continuation=None)],
            },
            failing={56, 10},
        )
        chain_ids = [1, 56, 137, 10]

        results = await fetch_all_chains(provider, chain_ids, "0xw", concurrency=2, page_delay=0)

        assert [r.chain_id for r in results] == chain_ids
        by_chain = {r.chain_id: r for r in results}
        assert len(by_chain[1].items) == 3
        assert len(by_chain[137].items) == 2
        assert by_chain[56].items == [] and not by_chain[56].ok
        assert by_chain[10].items == [] and "HTTP 500" in by_chain[10].error

    @pytest.mark.asyncio
    async def test_all_chains_failing_still_returns_all(self):
        """Test a total failure never raises."""
        provider = ScriptedProvider(failing={1, 56, 137})

        results = await fetch_all_chains(provider, [1, 56, 137], "0xw", page_delay=0)

        assert len(results) == 3
        assert all(r.items == [] for r in results)

    @pytest.mark.asyncio
    async def test_respects_concurrency(self):
        """Test chains are fetched through the limiter."""
        provider = ScriptedProvider(delay=0.01)
        limiter = ConcurrencyLimiter(2)

        results = await fetch_all_chains(
            provider, [1, 56, 137, 10, 42161], "0xw",
            page_delay=0, limiter=limiter,
        )

        assert len(results) == 5
        assert provider.peak_in_flight <= 2
        assert limiter.peak == 2

    @pytest.mark.asyncio
    async def test_missing_credential_is_fatal(self):
        """Test a missing key is raised to the caller before fetching."""
        provider = ScriptedProvider(api_key="")

        with pytest.raises(MissingCredentialError):
            await fetch_all_chains(provider, [1, 137], "0xw")

        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_empty_chain_list(self):
        """Test no chains yields no results."""
        provider = ScriptedProvider()

        assert await fetch_all_chains(provider, [], "0xw") == []
