#!/usr/bin/env python3
# wsrobot_daemon/resilience.py
# Reconnect backoff for the connecting transport role

import asyncio
import logging

logger = logging.getLogger(__name__)


# ============================================
# Exponential Backoff
# ============================================
class Backoff:
    """
    Exponential backoff between reconnect attempts.

    Usage:
        backoff = Backoff(initial_delay=1, max_delay=30)

        while True:
            try:
                await connect()
                backoff.reset()
            except OSError:
                await backoff.wait("connect")
    """

    def __init__(self, initial_delay=1.0, max_delay=30.0, exponential_base=2):
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base

        self.attempt = 0
        self._delay = initial_delay

    def next_delay(self) -> float:
        """Delay before the next attempt; grows until max_delay"""
        wait_time = min(self._delay, self.max_delay)
        self._delay = min(self._delay * self.exponential_base, self.max_delay)
        self.attempt += 1
        return wait_time

    def reset(self):
        self.attempt = 0
        self._delay = self.initial_delay

    async def wait(self, name="operation", error=None):
        wait_time = self.next_delay()
        reason = f" (error: {str(error)[:50]})" if error else ""
        logger.warning(f"⚠️ {name}: Retry {self.attempt} in {wait_time}s{reason}")
        await asyncio.sleep(wait_time)
