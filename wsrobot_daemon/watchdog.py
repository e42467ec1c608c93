#!/usr/bin/env python3
# wsrobot_daemon/watchdog.py
# Driver-station packet watchdog

import time
import logging
from datetime import datetime
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class DSPacketWatchdog:
    """
    Tracks whether driver-station packets are still arriving.

    Features:
    - feed() on every DriverStation message
    - check() on every polling tick
    - One notification per transition (cleared / timed out)

    Starts in the "no packets" state without notifying. The first packet
    fires on_cleared; silence longer than timeout fires on_timeout.

    Usage:
        watchdog = DSPacketWatchdog(0.25, on_timeout=..., on_cleared=...)

        # DriverStation handler:
        watchdog.feed()

        # Polling tick:
        watchdog.check()
    """

    def __init__(
        self,
        timeout: float,
        on_timeout: Optional[Callable[[], None]] = None,
        on_cleared: Optional[Callable[[], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            timeout: Seconds without a packet before on_timeout fires
            on_timeout: Called when packets stop arriving
            on_cleared: Called when packets (re)start arriving
            clock: Monotonic time source
        """
        self.timeout = timeout
        self.on_timeout = on_timeout
        self.on_cleared = on_cleared
        self._clock = clock

        self.last_feed: Optional[float] = None
        self.timed_out = True
        self.timeout_count = 0

    def feed(self):
        """Record a driver-station packet"""
        self.last_feed = self._clock()

        if self.timed_out:
            self.timed_out = False
            logger.info("DS packets arriving")
            if self.on_cleared:
                self.on_cleared()

    def check(self) -> bool:
        """
        Fire on_timeout if the last packet is too old.

        Returns:
            True if currently timed out
        """
        if self.timed_out or self.last_feed is None:
            return self.timed_out

        time_since_feed = self._clock() - self.last_feed
        if time_since_feed >= self.timeout:
            self.timed_out = True
            self.timeout_count += 1
            logger.warning(
                f"DS packet timeout! "
                f"({time_since_feed * 1000:.0f}ms > {self.timeout * 1000:.0f}ms)"
            )
            if self.on_timeout:
                self.on_timeout()

        return self.timed_out

    def reset(self):
        """Forget packet history without notifying (used on disconnect)"""
        self.last_feed = None
        self.timed_out = True

    def get_report(self) -> Dict:
        time_since_feed = None
        if self.last_feed is not None:
            time_since_feed = round(self._clock() - self.last_feed, 3)

        return {
            "status": "timeout" if self.timed_out else "healthy",
            "timeout": self.timeout,
            "time_since_feed": time_since_feed,
            "timeout_count": self.timeout_count,
            "checked_at": datetime.now().isoformat(),
        }
