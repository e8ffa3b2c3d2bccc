import asyncio
from datetime import timedelta

import pytest

from core import connection
from core.connection import (
    AdaptivePerformanceSettings, ConnectionManager, ConnectionQuality, quality_for_latency, round_half_up,
)

def ms(value: float) -> timedelta:
    return timedelta(milliseconds=value)

@pytest.mark.parametrize("latency, expected", [
    (50, ConnectionQuality.EXCELLENT),
    (99, ConnectionQuality.EXCELLENT),
    (100, ConnectionQuality.GOOD),
    (299, ConnectionQuality.GOOD),
    (300, ConnectionQuality.FAIR),
    (999, ConnectionQuality.FAIR),
    (1000, ConnectionQuality.POOR),
    (5000, ConnectionQuality.POOR),
])
def test_quality_for_latency_thresholds(latency, expected):
    assert quality_for_latency(ms(latency)) == expected

def test_starts_good():
    assert ConnectionManager().quality == ConnectionQuality.GOOD

def test_improvement_moves_one_level_per_sample():
    manager = ConnectionManager(ConnectionQuality.POOR)

    manager.measure_latency(ms(10))
    assert manager.quality == ConnectionQuality.FAIR
    manager.measure_latency(ms(10))
    assert manager.quality == ConnectionQuality.GOOD
    manager.measure_latency(ms(10))
    assert manager.quality == ConnectionQuality.EXCELLENT

def test_large_degradation_is_immediate():
    manager = ConnectionManager(ConnectionQuality.EXCELLENT)

    manager.measure_latency(ms(2000))

    assert manager.quality == ConnectionQuality.POOR

def test_single_level_degradation_is_ignored():
    manager = ConnectionManager(ConnectionQuality.EXCELLENT)

    manager.measure_latency(ms(150))
    assert manager.quality == ConnectionQuality.EXCELLENT

    manager.measure_latency(ms(500))
    assert manager.quality == ConnectionQuality.FAIR

def test_offline_and_online():
    manager = ConnectionManager(ConnectionQuality.EXCELLENT)

    manager.set_online()
    assert manager.quality == ConnectionQuality.EXCELLENT

    manager.set_offline()
    assert manager.quality == ConnectionQuality.OFFLINE
    assert manager.recommended_batch_size == 1
    assert manager.request_timeout == timedelta(seconds=5)

    manager.set_online()
    assert manager.quality == ConnectionQuality.GOOD

def test_listeners_notified_on_change_only():
    manager = ConnectionManager()
    seen = []
    manager.add_listener(seen.append)
    manager.add_listener(lambda quality: 1 / 0)

    manager.update_quality(ConnectionQuality.GOOD)
    manager.set_offline()
    manager.set_online()

    assert seen == [ConnectionQuality.OFFLINE, ConnectionQuality.GOOD]

@pytest.mark.parametrize("quality, ttl, batch, prefetch, image, timeout", [
    (ConnectionQuality.EXCELLENT, 30, 50, 10, 1.0, 10),
    (ConnectionQuality.GOOD, 60, 50, 5, 1.0, 10),
    (ConnectionQuality.FAIR, 120, 25, 2, 0.75, 15),
    (ConnectionQuality.POOR, 300, 10, 0, 0.5, 30),
    (ConnectionQuality.OFFLINE, 3600, 1, 0, 0.5, 5),
])
def test_policy_tables(quality, ttl, batch, prefetch, image, timeout):
    manager = ConnectionManager(quality)

    assert manager.recommended_cache_ttl == timedelta(seconds=ttl)
    assert manager.recommended_batch_size == batch
    assert manager.recommended_prefetch_count == prefetch
    assert manager.image_quality_multiplier == image
    assert manager.request_timeout == timedelta(seconds=timeout)

def test_adaptive_settings():
    manager = ConnectionManager(ConnectionQuality.FAIR)
    settings = AdaptivePerformanceSettings(manager)

    assert settings.get_cache_ttl() == timedelta(minutes=2)
    assert settings.get_cache_ttl(timedelta(minutes=10)) == timedelta(minutes=10)
    assert not settings.should_prefetch()
    assert settings.get_adaptive_image_dimension(200) == 150
    assert settings.get_adaptive_image_dimension(None) is None
    assert settings.get_adaptive_image_dimension(float('inf')) is None
    assert settings.get_adaptive_image_dimension(-5) is None
    assert settings.get_list_page_size(20) == 15
    assert settings.should_show_connection_warning()

    manager.update_quality(ConnectionQuality.EXCELLENT)
    assert settings.should_prefetch()
    assert not settings.should_show_connection_warning()

def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(1.5) == 2
    assert round_half_up(2.4) == 2

async def test_run_measured_failure_forces_poor():
    manager = ConnectionManager(ConnectionQuality.EXCELLENT)

    async def failing():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await manager.run_measured(failing())
    assert manager.quality == ConnectionQuality.POOR

async def test_run_measured_fast_operation_improves_quality():
    manager = ConnectionManager(ConnectionQuality.POOR)

    async def fast():
        return 42

    assert await manager.run_measured(fast()) == 42
    assert manager.quality == ConnectionQuality.FAIR

async def test_run_measured_times_out_without_retry(monkeypatch):
    monkeypatch.setitem(connection.REQUEST_TIMEOUT, ConnectionQuality.OFFLINE, timedelta(milliseconds=50))
    manager = ConnectionManager(ConnectionQuality.OFFLINE)
    calls = []

    async def slow():
        calls.append(1)
        await asyncio.sleep(10)

    with pytest.raises(asyncio.TimeoutError):
        await manager.run_measured(slow())
    assert calls == [1]
    assert manager.quality == ConnectionQuality.POOR

async def test_stream_yields_changes():
    manager = ConnectionManager()
    stream = manager.stream()
    task = asyncio.ensure_future(stream.__anext__())
    await asyncio.sleep(0)

    manager.set_offline()

    assert await asyncio.wait_for(task, timeout=1) == ConnectionQuality.OFFLINE
    await stream.aclose()
