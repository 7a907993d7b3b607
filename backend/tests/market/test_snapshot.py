"""Tests for SnapshotLoader retry policy."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from marketwatch.market.snapshot import BootstrapStatus, SnapshotLoader
from tests.market.fakes import FakeFetcher, make_record, snapshot_body


async def _hang():
    await asyncio.sleep(10)


@pytest.mark.asyncio
class TestSnapshotLoader:
    """Unit tests for SnapshotLoader with a scripted fetcher."""

    async def test_success_first_attempt(self, records):
        fetcher = FakeFetcher(snapshot_body(records))
        result = await SnapshotLoader(fetcher, retry_delay=0).load()

        assert result.ok
        assert result.status is BootstrapStatus.SUCCEEDED
        assert result.attempts == 1
        assert [e.pair_name for e in result.entities] == [
            "BTCUSDT", "ETHUSDT", "SOLUSDT", "USDCBTC",
        ]
        assert fetcher.calls == 1

    async def test_favorites_forced_false(self):
        record = make_record("BTCUSDT", 1)
        record["is_collect"] = True
        result = await SnapshotLoader(FakeFetcher(snapshot_body([record])), retry_delay=0).load()
        assert result.entities[0].is_favorite is False

    async def test_malformed_record_is_skipped(self):
        """One bad record costs only that pair, not the whole snapshot."""
        no_ticker = make_record("SOLUSDT", 3)
        no_ticker["ticker"] = None
        no_id = make_record("XRPUSDT", 4)
        del no_id["id"]
        records = [make_record("BTCUSDT", 1), no_ticker, make_record("ETHUSDT", 2), no_id, "junk"]
        fetcher = FakeFetcher(snapshot_body(records))

        result = await SnapshotLoader(fetcher, retry_delay=0).load()

        assert result.ok
        assert result.attempts == 1
        assert [e.pair_name for e in result.entities] == ["BTCUSDT", "ETHUSDT"]
        assert fetcher.calls == 1

    async def test_retries_then_succeeds(self, records):
        fetcher = FakeFetcher(ConnectionResetError("reset"), snapshot_body(records))
        result = await SnapshotLoader(fetcher, retry_delay=0).load()

        assert result.ok
        assert result.attempts == 2
        assert fetcher.calls == 2

    async def test_non_200_status_is_retried(self, records):
        fetcher = FakeFetcher(
            snapshot_body([], status_code=500, message="maintenance"),
            snapshot_body(records),
        )
        result = await SnapshotLoader(fetcher, retry_delay=0).load()
        assert result.ok
        assert fetcher.calls == 2

    async def test_malformed_body_is_retried(self, records):
        fetcher = FakeFetcher({"unexpected": True}, "not json", snapshot_body(records))
        result = await SnapshotLoader(fetcher, retry_delay=0).load()
        assert result.ok
        assert result.attempts == 3

    async def test_gives_up_after_three_attempts(self):
        fetcher = FakeFetcher(snapshot_body([], status_code=503, message="down"))
        result = await SnapshotLoader(fetcher, retry_delay=0).load()

        assert not result.ok
        assert result.status is BootstrapStatus.FAILED
        assert result.entities == []
        assert result.attempts == 3
        assert "503" in result.reason
        assert fetcher.calls == 3

    async def test_timeout_counts_as_failure(self):
        fetcher = FakeFetcher(_hang)
        result = await SnapshotLoader(fetcher, timeout=0.01, retry_delay=0).load()

        assert not result.ok
        assert fetcher.calls == 3
        assert "timed out" in result.reason

    async def test_waits_between_attempts_only(self):
        """Sleeps 5s between attempts, not after the last one."""
        fetcher = FakeFetcher(ConnectionError("refused"))
        loader = SnapshotLoader(fetcher)

        with patch("marketwatch.market.snapshot.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = await loader.load()

        assert not result.ok
        assert sleep.await_count == 2
        sleep.assert_awaited_with(5.0)

    async def test_no_sleep_on_success(self, records):
        with patch("marketwatch.market.snapshot.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await SnapshotLoader(FakeFetcher(snapshot_body(records))).load()
        sleep.assert_not_awaited()

    async def test_custom_attempt_count(self):
        fetcher = FakeFetcher(ConnectionError("refused"))
        result = await SnapshotLoader(fetcher, max_attempts=5, retry_delay=0).load()
        assert result.attempts == 5
        assert fetcher.calls == 5

    async def test_empty_snapshot_is_success(self):
        result = await SnapshotLoader(FakeFetcher(snapshot_body([])), retry_delay=0).load()
        assert result.ok
        assert result.entities == []

    async def test_result_to_dict(self, records):
        result = await SnapshotLoader(FakeFetcher(snapshot_body(records)), retry_delay=0).load()
        data = result.to_dict()
        assert data["status"] == "succeeded"
        assert data["pairs"] == 4
        assert data["reason"] is None
