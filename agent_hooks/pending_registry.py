"""Pending call registry for tool start/completion correlation.

A ``tool.execute.before`` event registers what the later
``tool.execute.after`` event needs (target path, pre-known content) under
the host's call ID. The completion event consumes the entry exactly once.
Entries whose completion never arrives (crash, dropped event) are removed
by a periodic sweep instead of per-key timers.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .models import PendingRegistryStats

logger = logging.getLogger(__name__)

DEFAULT_TTL_SEC = 60.0
DEFAULT_SWEEP_INTERVAL_SEC = 10.0


@dataclass
class PendingOperation:
    """A registered start event awaiting its completion."""

    key: str
    payload: Any
    created_at: float

    def age(self, now: float) -> float:
        return now - self.created_at

    def is_expired(self, now: float, ttl: float) -> bool:
        return self.age(now) > ttl


class PendingCallRegistry:
    """
    Maps correlation keys to in-flight operation payloads with TTL expiry.

    At most one entry exists per key; registering an existing key replaces
    it. ``consume`` removes and returns an entry, so each registration is
    handed out at most once.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SEC,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize pending call registry.

        Args:
            ttl: Seconds an entry may stay unconsumed before the sweep drops it
            sweep_interval: Seconds between sweeps
            clock: Monotonic time source (seconds)
        """
        self._entries: Dict[str, PendingOperation] = {}
        self._ttl = ttl
        self._sweep_interval = sweep_interval
        self._clock = clock

        self._sweep_task: Optional[asyncio.Task] = None
        self._running = False

        # Statistics counters
        self._total_registered = 0
        self._total_overwritten = 0
        self._total_consumed = 0
        self._total_missed = 0
        self._total_expired = 0

        logger.debug(f"PendingCallRegistry initialized with ttl={ttl}s, sweep_interval={sweep_interval}s")

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def sweep_interval(self) -> float:
        return self._sweep_interval

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def register(self, key: str, payload: Any) -> None:
        """
        Register a pending operation under ``key``, replacing any existing entry.

        Args:
            key: Opaque correlation key supplied by the caller
            payload: Data the completion handler needs
        """
        if key in self._entries:
            self._total_overwritten += 1
            logger.debug(f"Pending call {key} re-registered, replacing previous entry")

        self._entries[key] = PendingOperation(key=key, payload=payload, created_at=self._clock())
        self._total_registered += 1
        logger.debug(f"Registered pending call {key} (pending={len(self._entries)})")

    def consume(self, key: str) -> Optional[Any]:
        """
        Remove and return the payload registered under ``key``.

        Returns:
            The payload, or None if nothing is registered (never registered,
            already consumed, or expired)
        """
        entry = self._entries.pop(key, None)
        if entry is None:
            self._total_missed += 1
            logger.debug(f"No pending call for {key}")
            return None

        self._total_consumed += 1
        logger.debug(f"Consumed pending call {key} (age={entry.age(self._clock()):.2f}s)")
        return entry.payload

    def sweep(self) -> int:
        """
        Remove every entry older than the TTL.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired_keys = [
            key for key, entry in self._entries.items()
            if entry.is_expired(now, self._ttl)
        ]

        for key in expired_keys:
            entry = self._entries.pop(key)
            self._total_expired += 1
            logger.debug(f"Pending call {key} expired (age={entry.age(now):.2f}s)")

        if expired_keys:
            logger.info(f"Swept {len(expired_keys)} expired pending calls")

        return len(expired_keys)

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._sweep_task is not None:
            return

        self._running = True
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info("Pending call registry started")

    async def stop(self) -> None:
        """Cancel the sweep task so it does not hold the event loop open."""
        self._running = False

        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        logger.info("Pending call registry stopped")

    async def _sweep_loop(self) -> None:
        """Periodically drop stale entries."""
        while self._running:
            try:
                await asyncio.sleep(self._sweep_interval)
                self.sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Pending call sweep error: {e}")

    def get_stats(self) -> PendingRegistryStats:
        """
        Get registry statistics for diagnostics.

        Returns:
            PendingRegistryStats with current size and historical counters
        """
        return PendingRegistryStats(
            total_pending=len(self._entries),
            total_registered=self._total_registered,
            total_overwritten=self._total_overwritten,
            total_consumed=self._total_consumed,
            total_missed=self._total_missed,
            total_expired=self._total_expired,
        )
