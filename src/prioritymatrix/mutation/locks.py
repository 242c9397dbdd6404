"""Per-key asyncio mutual exclusion with FIFO waiters and stale-lock release."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

LOCK_TIMEOUT = 300.0  # seconds
SWEEP_INTERVAL = 60.0  # seconds between stale-lock sweeps


@dataclass
class _Stripe:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    acquired_at: float | None = None
    generation: int = 0
    users: int = 0  # current holder plus queued waiters


class KeyedLock:
    """One lock per key, created on demand and dropped once idle.

    Waiters on the same key are served in arrival order; different keys never
    wait on each other. A holder that keeps a key longer than ``stale_after``
    seconds is force-released the next time the key is requested.
    """

    def __init__(
        self,
        stale_after: float = LOCK_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.stale_after = stale_after
        self.clock = clock
        self._stripes: dict[str, _Stripe] = {}

    def __len__(self) -> int:
        return len(self._stripes)

    def locked(self, key: str) -> bool:
        stripe = self._stripes.get(key)
        return stripe is not None and stripe.lock.locked()

    def waiting(self, key: str) -> int:
        """Number of requests queued behind the current holder of ``key``."""
        stripe = self._stripes.get(key)
        if stripe is None:
            return 0
        return max(stripe.users - (1 if stripe.lock.locked() else 0), 0)

    def _release_if_stale(self, key: str, stripe: _Stripe) -> bool:
        if stripe.acquired_at is None or not stripe.lock.locked():
            return False
        held_for = self.clock() - stripe.acquired_at
        if held_for <= self.stale_after:
            return False
        logger.warning("Force-releasing stale lock on %s (held %.0fs)", key, held_for)
        stripe.generation += 1
        stripe.acquired_at = None
        stripe.lock.release()
        return True

    def release_stale(self) -> int:
        """Force-release every lock held past the timeout; returns how many."""
        return sum(self._release_if_stale(key, stripe) for key, stripe in list(self._stripes.items()))

    async def sweep(self, interval: float = SWEEP_INTERVAL) -> None:
        """Release stale locks every ``interval`` seconds until cancelled.

        Waiters already queued behind a hung holder get the lock without a new
        request for the same key.
        """
        while True:
            await asyncio.sleep(interval)
            released = self.release_stale()
            if released:
                logger.info("Stale-lock sweep released %d lock(s)", released)

    def _reap(self, key: str, stripe: _Stripe) -> None:
        if stripe.users == 0 and self._stripes.get(key) is stripe:
            del self._stripes[key]

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        stripe = self._stripes.get(key)
        if stripe is None:
            stripe = self._stripes[key] = _Stripe()
        else:
            self._release_if_stale(key, stripe)

        stripe.users += 1
        try:
            await stripe.lock.acquire()
        except BaseException:
            stripe.users -= 1
            self._reap(key, stripe)
            raise

        stripe.generation += 1
        token = stripe.generation
        stripe.acquired_at = self.clock()
        try:
            yield
        finally:
            # A force-released holder must not release its successor's lock.
            if stripe.generation == token and stripe.lock.locked():
                stripe.acquired_at = None
                stripe.lock.release()
            stripe.users -= 1
            self._reap(key, stripe)
