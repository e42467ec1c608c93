# tests/test_resilience.py
# Reconnect backoff

import asyncio

from wsrobot_daemon.resilience import Backoff


def test_delays_double_until_capped():
    backoff = Backoff(initial_delay=1, max_delay=5)
    assert [backoff.next_delay() for _ in range(5)] == [1, 2, 4, 5, 5]
    assert backoff.attempt == 5


def test_reset_restarts_sequence():
    backoff = Backoff(initial_delay=0.5, max_delay=30)
    backoff.next_delay()
    backoff.next_delay()

    backoff.reset()

    assert backoff.attempt == 0
    assert backoff.next_delay() == 0.5


def test_wait_advances_attempts():
    backoff = Backoff(initial_delay=0.001, max_delay=0.002)

    async def scenario():
        await backoff.wait("connect", OSError("refused"))
        await backoff.wait("connect")

    asyncio.run(scenario())

    assert backoff.attempt == 2
    assert backoff.next_delay() == 0.002
