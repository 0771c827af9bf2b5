"""
Tests for the customer session service and the socket session timer.
"""

import asyncio

import pytest

from shared.config.settings import settings
from shared.infrastructure.session_store import RedisSessionStore
from rest_api.services.domain.session_service import (
    CustomerSessionService,
    compute_time_left,
    format_time_left,
)
from ws_gateway.components.session.timer import SessionTimer

DURATION = 600_000
TICK = 1.0
GRACE = 5.0


class GatedSleep:
    """Tick sleeps block until cancelled; every other sleep returns at once."""

    def __init__(self, block=(TICK,)):
        self.block = set(block)
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if seconds in self.block:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(0)


async def settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


class Recorder:
    def __init__(self):
        self.ticks: list[int] = []
        self.expired = 0
        self.resets = 0

    async def on_tick(self, left: int) -> None:
        self.ticks.append(left)

    async def on_expire(self) -> None:
        self.expired += 1

    async def on_reset(self) -> None:
        self.resets += 1


def make_timer(service, recorder, table_id="4", device_id="dev-1", sleep=None):
    return SessionTimer(
        service,
        table_id,
        device_id,
        on_tick=recorder.on_tick,
        on_expire=recorder.on_expire,
        on_reset=recorder.on_reset,
        tick_interval=TICK,
        grace=GRACE,
        sleep=sleep or GatedSleep(),
    )


class TestTimeLeft:

    def test_never_negative(self):
        assert compute_time_left(1_000, 500, 10_000) == 0
        assert compute_time_left(1_000, 500, 1_200) == 300

    def test_format(self):
        assert format_time_left(600_000) == "10:00"
        assert format_time_left(59_999) == "00:59"
        assert format_time_left(0) == "00:00"
        assert format_time_left(-5) == "00:00"


class TestCustomerSessionService:

    @pytest.mark.asyncio
    async def test_create_is_create_or_read(self, session_service, clock):
        first = await session_service.create("4", "dev-1")
        clock.advance(30_000)
        again = await session_service.create("4", "dev-1")

        assert again.start_time == first.start_time
        assert again.time_left(clock()) == DURATION - 30_000

    @pytest.mark.asyncio
    async def test_sessions_are_per_device(self, session_service, clock):
        a = await session_service.create("4", "dev-1")
        clock.advance(1_000)
        b = await session_service.create("4", "dev-2")
        assert b.start_time == a.start_time + 1_000

    @pytest.mark.asyncio
    async def test_destroy_then_fresh_session(self, session_service, clock):
        await session_service.create("4", "dev-1")
        clock.advance(DURATION + 1)
        await session_service.destroy("4", "dev-1")
        assert await session_service.read("4", "dev-1") is None

        fresh = await session_service.create("4", "dev-1")
        assert fresh.time_left(clock()) == DURATION

    @pytest.mark.asyncio
    async def test_output(self, session_service, clock):
        session = await session_service.create("4", "dev-1")
        clock.advance(DURATION - 61_000)
        output = session.to_output(clock())
        assert output.time_left == "01:01"
        assert output.expired is False


class TestSessionTimer:

    @pytest.mark.asyncio
    async def test_ticks_from_wall_clock(self, session_service, clock):
        recorder = Recorder()
        timer = make_timer(session_service, recorder)
        await timer.start()
        await settle()

        assert recorder.ticks == [DURATION]
        clock.advance(1_500)
        assert await timer.poll() == DURATION - 1_500
        clock.advance(250)
        assert await timer.poll() == DURATION - 1_750
        assert recorder.ticks == sorted(recorder.ticks, reverse=True)

        await timer.stop()

    @pytest.mark.asyncio
    async def test_already_expired_session_expires_on_first_tick(self, session_service, session_store, clock):
        await session_store.set_start_time_if_absent("4", "dev-1", clock() - DURATION - 1)
        recorder = Recorder()
        timer = make_timer(session_service, recorder)

        await timer.start()
        await settle()

        assert recorder.ticks == []
        assert recorder.expired == 1
        assert recorder.resets == 1
        assert await session_store.get_start_time("4", "dev-1") is None
        await timer.stop()

    @pytest.mark.asyncio
    async def test_exactly_ten_minutes_old_is_expired(self, session_service, session_store, clock):
        await session_store.set_start_time_if_absent("4", "dev-1", clock() - DURATION)
        recorder = Recorder()
        timer = make_timer(session_service, recorder)

        await timer.start()
        await settle()

        assert recorder.expired == 1
        await timer.stop()

    @pytest.mark.asyncio
    async def test_expiry_fires_once_under_repeated_polls(self, session_service, clock):
        recorder = Recorder()
        timer = make_timer(session_service, recorder)
        await timer.start()
        await settle()

        clock.advance(DURATION)
        results = await asyncio.gather(*(timer.poll() for _ in range(5)))
        await settle()

        assert results == [0] * 5
        assert recorder.expired == 1
        assert recorder.resets == 1
        assert timer.time_left() == 0
        await timer.stop()

    @pytest.mark.asyncio
    async def test_reconnect_resumes_persisted_start(self, session_service, clock):
        first = make_timer(session_service, Recorder())
        await first.start()
        await settle()
        await first.stop()

        clock.advance(240_000)
        recorder = Recorder()
        second = make_timer(session_service, recorder)
        await second.start()
        await settle()

        assert recorder.ticks == [DURATION - 240_000]
        await second.stop()

    @pytest.mark.asyncio
    async def test_no_callbacks_after_stop(self, session_service, clock):
        recorder = Recorder()
        timer = make_timer(session_service, recorder)
        await timer.start()
        await settle()
        await timer.stop()

        clock.advance(DURATION * 2)
        assert await timer.poll() == 0
        await settle()

        assert recorder.expired == 0
        assert recorder.resets == 0
        assert timer.stopped

    @pytest.mark.asyncio
    async def test_reset_waits_for_grace(self, session_service, session_store, clock):
        await session_store.set_start_time_if_absent("4", "dev-1", clock() - DURATION - 1)
        recorder = Recorder()
        sleep = GatedSleep(block=(TICK, GRACE))
        timer = make_timer(session_service, recorder, sleep=sleep)

        await timer.start()
        await settle()

        assert recorder.expired == 1
        assert recorder.resets == 0
        assert GRACE in sleep.calls
        await timer.stop()
        assert recorder.resets == 0

    @pytest.mark.asyncio
    async def test_failing_cleanup_does_not_block_expiry(self, session_store, clock):
        service = CustomerSessionService(session_store, clock=clock, duration_ms=DURATION)
        await session_store.set_start_time_if_absent("4", "dev-1", clock() - DURATION - 1)
        resets = []

        async def broken_cleanup():
            raise RuntimeError("cart service down")

        async def on_reset():
            resets.append(True)

        timer = SessionTimer(
            service, "4", "dev-1",
            on_expire=broken_cleanup,
            on_reset=on_reset,
            tick_interval=TICK,
            grace=GRACE,
            sleep=GatedSleep(),
        )
        await timer.start()
        await settle()

        assert timer.expired
        assert resets == [True]
        assert await session_store.get_start_time("4", "dev-1") is None
        await timer.stop()


class ExpiringRedis:
    """In-process stand-in for the SET NX EX / GET / DELETE subset, on a fake clock."""

    def __init__(self, clock):
        self.clock = clock
        self.values: dict[str, tuple[str, int]] = {}

    def _live(self, key):
        entry = self.values.get(key)
        if entry is not None and entry[1] <= self.clock():
            del self.values[key]
            entry = None
        return entry

    async def set(self, key, value, nx=False, ex=None):
        if nx and self._live(key) is not None:
            return None
        self.values[key] = (value, self.clock() + ex * 1000)
        return True

    async def get(self, key):
        entry = self._live(key)
        return entry[0] if entry else None

    async def delete(self, key):
        return 1 if self.values.pop(key, None) else 0


class TestRedisBackedSession:

    @pytest.fixture
    def redis_service(self, clock):
        store = RedisSessionStore(ExpiringRedis(clock))
        return CustomerSessionService(store, clock=clock, duration_ms=DURATION)

    @pytest.mark.asyncio
    async def test_start_time_outlives_the_session(self, redis_service, clock):
        opened = await redis_service.create("4", "dev-1")
        clock.advance(15 * 60 * 1000)

        again = await redis_service.create("4", "dev-1")

        assert again.start_time == opened.start_time
        assert again.time_left(clock()) == 0

    @pytest.mark.asyncio
    async def test_late_return_expires_instead_of_restarting(self, redis_service, clock):
        await redis_service.create("4", "dev-1")
        clock.advance(15 * 60 * 1000)

        recorder = Recorder()
        timer = make_timer(redis_service, recorder)
        await timer.start()
        await settle()

        assert recorder.ticks == []
        assert recorder.expired == 1
        assert timer.time_left() == 0
        assert await redis_service.read("4", "dev-1") is None
        await timer.stop()

    def test_default_ttl_is_longer_than_a_session(self):
        assert settings.session_record_ttl * 1000 > settings.session_duration_ms
