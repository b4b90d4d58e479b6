"""Expiry reaper — purges time-bounded records in the background.

Learn: Three independent sweeps, each a single DELETE ... WHERE:

  two-factor challenges    created more than 15 minutes ago
  revoked refresh tokens   created more than 7 days ago
  PENDING users            created more than 24 hours ago

Ledger retention must be at least the refresh-token TTL: once a ledger
entry is purged, the token it blocked must already be expired on its
own (Settings enforces this).

The sweeps are idempotent and only touch rows that no request can use
any more, so they run safely alongside request handling and running one
twice has no further effect. ReaperWorker runs them on a fixed timer as
a background task in the FastAPI lifespan, or standalone via
`warden reap`.
"""

import asyncio
from datetime import timedelta
from typing import Awaitable, Callable

import structlog

from warden.clock import Clock
from warden.storage.base import ChallengeStore, RefreshTokenLedger, UserStore

logger = structlog.get_logger()


class ExpiryReaper:
    """The three sweeps. Each returns the number of rows removed."""

    def __init__(
        self,
        users: UserStore,
        challenges: ChallengeStore,
        ledger: RefreshTokenLedger,
        clock: Clock,
        challenge_ttl: timedelta = timedelta(minutes=15),
        ledger_retention: timedelta = timedelta(days=7),
        confirmation_window: timedelta = timedelta(hours=24),
    ):
        self.users = users
        self.challenges = challenges
        self.ledger = ledger
        self.clock = clock
        self.challenge_ttl = challenge_ttl
        self.ledger_retention = ledger_retention
        self.confirmation_window = confirmation_window

    async def remove_expired_challenges(self) -> int:
        threshold = self.clock.now() - self.challenge_ttl
        count = await self.challenges.delete_created_before(threshold)
        if count > 0:
            logger.info("reaper.challenges_removed", count=count)
        return count

    async def remove_expired_revoked_tokens(self) -> int:
        threshold = self.clock.now() - self.ledger_retention
        count = await self.ledger.delete_created_before(threshold)
        if count > 0:
            logger.info("reaper.revoked_tokens_removed", count=count)
        return count

    async def remove_expired_pending_users(self) -> int:
        threshold = self.clock.now() - self.confirmation_window
        count = await self.users.delete_pending_created_before(threshold)
        if count > 0:
            logger.info("reaper.pending_users_removed", count=count)
        return count

    def sweeps(self) -> dict[str, Callable[[], Awaitable[int]]]:
        return {
            "challenges": self.remove_expired_challenges,
            "revoked_tokens": self.remove_expired_revoked_tokens,
            "pending_users": self.remove_expired_pending_users,
        }


class ReaperWorker:
    """Background loop that runs every sweep once per interval.

    Usage:
        worker = ReaperWorker(reaper, interval=3600)
        asyncio.create_task(worker.run_loop())
    """

    def __init__(self, reaper: ExpiryReaper, interval: float = 3600.0):
        self.reaper = reaper
        self.interval = interval
        self._running = False

    async def run_once(self) -> dict[str, int]:
        """Run each sweep; a failing sweep is logged and does not stop the others."""
        counts: dict[str, int] = {}
        for name, sweep in self.reaper.sweeps().items():
            try:
                counts[name] = await sweep()
            except Exception:
                logger.exception("reaper.sweep_failed", sweep=name)
        return counts

    async def run_loop(self) -> None:
        """Main worker loop — sweep, then sleep for the interval."""
        self._running = True
        logger.info("reaper.started", interval=self.interval)

        while self._running:
            await self.run_once()
            await asyncio.sleep(self.interval)

    def stop(self) -> None:
        """Signal the worker to stop."""
        self._running = False
        logger.info("reaper.stopping")
