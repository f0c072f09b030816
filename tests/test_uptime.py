"""Uptime formatting and tracker state machine tests."""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from nvclip.uptime import UptimeTracker, calculate_uptime, format_uptime, to_iso


@pytest.mark.parametrize(
    ("elapsed_ms", "expected"),
    [
        (0, "0s"),
        (999, "0s"),
        (42_000, "42s"),
        (90_000, "1m 30s"),
        (3_600_000, "1h 0m 0s"),
        (3_661_000, "1h 1m 1s"),
        (86_400_000, "1d 0h 0m"),
        (90_000_000, "1d 1h 0m"),
        (-5_000, "0s"),
    ],
)
def test_format_uptime(elapsed_ms: int, expected: str) -> None:
    assert format_uptime(elapsed_ms) == expected


def test_calculate_uptime_without_start() -> None:
    assert calculate_uptime(None) == "0s"
    assert calculate_uptime(0) == "0s"


def test_calculate_uptime_with_explicit_now() -> None:
    assert calculate_uptime(1_000, now_ms=91_000) == "1m 30s"


def test_to_iso() -> None:
    assert to_iso(0) == "1970-01-01T00:00:00.000Z"
    assert to_iso(1_770_000_000_123) == "2026-02-02T02:40:00.123Z"


@pytest.mark.asyncio
async def test_initialize_fresh_store(tracker, store, clock) -> None:
    await tracker.initialize()

    assert tracker.initialized
    assert store.data["clp:uptime:start"] == str(int(clock.now * 1000))
    assert store.data["clp:total_links"] == "0"
    assert store.data["clp:total_clicks"] == "0"
    assert store.data["clp:uptime"] == "0s"


@pytest.mark.asyncio
async def test_initialize_resumes_persisted_start(tracker, store, clock) -> None:
    earlier = int(clock.now * 1000) - 3_661_000
    store.data.update({"clp:uptime:start": str(earlier), "clp:total_links": "7", "clp:total_clicks": "12"})

    await tracker.initialize()

    assert tracker.start_ms == earlier
    assert tracker.current_uptime() == "1h 1m 1s"
    assert store.data["clp:total_links"] == "7"
    assert store.data["clp:total_clicks"] == "12"


@pytest.mark.asyncio
async def test_initialize_survives_store_errors(tracker, store, mock_logger) -> None:
    store.get.side_effect = RedisConnectionError("down")

    await tracker.initialize()

    assert tracker.initialized
    mock_logger.error.assert_called_once()


@pytest.mark.asyncio
async def test_refresh_persists_uptime(tracker, store, clock) -> None:
    await tracker.initialize()
    clock.advance(90)

    uptime = await tracker.refresh()

    assert uptime == "1m 30s"
    assert store.data["clp:uptime"] == "1m 30s"


@pytest.mark.asyncio
async def test_reset_restarts_from_now(tracker, store, clock) -> None:
    await tracker.initialize()
    original_start = tracker.start_ms
    clock.advance(3_661)
    await tracker.refresh()

    result = await tracker.reset()

    assert result.old_start_ms == original_start
    assert result.old_uptime == "1h 1m 1s"
    assert result.new_start_ms == int(clock.now * 1000)
    assert result.start_persisted and result.uptime_persisted
    assert store.data["clp:uptime"] == "0s"
    assert store.data["clp:uptime:start"] == str(result.new_start_ms)

    clock.advance(90)
    assert tracker.current_uptime() == "1m 30s"


@pytest.mark.asyncio
async def test_persisted_start_falls_back_to_cached(tracker, store) -> None:
    assert await tracker.persisted_start_ms() == tracker.start_ms
    store.data["clp:uptime:start"] = "1000"
    assert await tracker.persisted_start_ms() == 1000


@pytest.mark.asyncio
async def test_reset_logs_old_and_new_start(tracker, store, clock, mock_logger) -> None:
    store.data["clp:uptime:start"] = "1770000000000"
    store.data["clp:uptime"] = "5m 0s"
    clock.advance(60)

    await tracker.reset()

    message = mock_logger.info.call_args.args[0]
    assert len(mock_logger.info.call_args.args) == 1
    assert "old start=2026-02-02T02:40:00.000Z" in message
    assert "old uptime=5m 0s" in message
    assert "new start=2026-02-02T02:41:00.000Z" in message


@pytest.mark.asyncio
async def test_reset_logs_none_without_previous_state(tracker, mock_logger) -> None:
    await tracker.reset()

    message = mock_logger.info.call_args.args[0]
    assert "old start=none" in message
    assert "old uptime=none" in message
