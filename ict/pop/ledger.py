"""Durable single-use ledger for proof token identifiers."""

import asyncio
import time

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ict.db.repo_nonce import claim_nonce, purge_expired

logger = structlog.get_logger(__name__)


class NonceLedger:
    """Replay guard shared by all requests.

    Each operation runs in its own short transaction so that a claim is
    durable before the request goes on to issue a token.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def try_claim(
        self, identifier: str, expires_at: int, now: int | None = None
    ) -> bool:
        """Atomically claim ``identifier``. False means it is already in use."""
        current = int(time.time()) if now is None else now
        async with self._session_factory() as session:
            try:
                claimed = await claim_nonce(session, identifier, expires_at, current)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
        return claimed

    async def garbage_collect(self, now: int | None = None) -> int:
        """Drop expired records."""
        current = int(time.time()) if now is None else now
        async with self._session_factory() as session:
            try:
                removed = await purge_expired(session, current)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
        if removed:
            logger.info("nonce_ledger_purged", removed=removed)
        return removed

    async def run_garbage_collector(self, interval: float) -> None:
        """Purge expired records every ``interval`` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            try:
                await self.garbage_collect()
            except Exception:
                logger.exception("nonce_ledger_purge_failed")
