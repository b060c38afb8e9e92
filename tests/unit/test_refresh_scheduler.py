import asyncio

import pytest

from nexus_crm.services.store.refresh_scheduler import RefreshScheduler, RefreshState


class RecordingRefresh:
    def __init__(self, duration: float = 0.0):
        self.duration = duration
        self.calls: list[float] = []
        self.active = 0
        self.max_active = 0

    async def __call__(self):
        loop = asyncio.get_running_loop()
        self.calls.append(loop.time())
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.duration)
        finally:
            self.active -= 1


@pytest.mark.asyncio
async def test_burst_collapses_into_one_refresh_after_last_trigger():
    refresh = RecordingRefresh()
    scheduler = RefreshScheduler(refresh, delay_seconds=1.0)
    loop = asyncio.get_running_loop()

    scheduler.trigger()
    await asyncio.sleep(0.2)
    scheduler.trigger()
    second_trigger = loop.time()

    await scheduler.wait_pending()

    assert len(refresh.calls) == 1
    assert refresh.calls[0] - second_trigger >= 1.0 - 0.01
    assert scheduler.refresh_count == 1
    assert scheduler.state == RefreshState.IDLE


@pytest.mark.asyncio
async def test_state_transitions():
    refresh = RecordingRefresh(duration=0.1)
    scheduler = RefreshScheduler(refresh, delay_seconds=0.05)

    assert scheduler.state == RefreshState.IDLE
    scheduler.trigger()
    assert scheduler.state == RefreshState.PENDING

    await asyncio.sleep(0.08)
    assert scheduler.state == RefreshState.REFRESHING

    await scheduler.wait_pending()
    assert scheduler.state == RefreshState.IDLE


@pytest.mark.asyncio
async def test_cancel_drops_pending_refresh():
    refresh = RecordingRefresh()
    scheduler = RefreshScheduler(refresh, delay_seconds=0.05)

    scheduler.trigger()
    scheduler.cancel()
    await asyncio.sleep(0.1)

    assert refresh.calls == []
    assert scheduler.state == RefreshState.IDLE


@pytest.mark.asyncio
async def test_refreshes_never_overlap():
    refresh = RecordingRefresh(duration=0.05)
    scheduler = RefreshScheduler(refresh, delay_seconds=0.01)

    scheduler.trigger()
    await asyncio.sleep(0.02)
    await asyncio.gather(scheduler.refresh_now(), scheduler.refresh_now())
    await scheduler.wait_pending()

    assert len(refresh.calls) == 3
    assert refresh.max_active == 1


@pytest.mark.asyncio
async def test_failed_refresh_is_logged_not_raised():
    calls = []

    async def failing():
        calls.append(1)
        raise RuntimeError("network down")

    scheduler = RefreshScheduler(failing, delay_seconds=0.01)
    scheduler.trigger()
    await scheduler.wait_pending()

    assert calls == [1]
    assert scheduler.refresh_count == 0
    assert scheduler.state == RefreshState.IDLE
