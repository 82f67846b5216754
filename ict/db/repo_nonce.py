"""Database operations for the proof nonce ledger."""

from sqlalchemy import delete
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from ict.db.models_nonce import ProofNonceEntity

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def claim_nonce(
    session: AsyncSession, identifier: str, expires_at: int, now: int
) -> bool:
    """Record ``identifier`` unless an unexpired record already exists.

    A single ``INSERT ... ON CONFLICT DO UPDATE ... WHERE`` statement: a
    fresh identifier is inserted, an expired leftover is overwritten, a
    live record is left alone and no row comes back.
    """
    dialect = session.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"nonce ledger does not support dialect '{dialect}'")

    stmt = insert(ProofNonceEntity).values(
        identifier=identifier, expires_at=expires_at
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[ProofNonceEntity.identifier],
        set_={"expires_at": stmt.excluded.expires_at},
        where=ProofNonceEntity.expires_at <= now,
    ).returning(ProofNonceEntity.identifier)
    result = await session.execute(stmt)
    return result.scalar_one_or_none() is not None


async def purge_expired(session: AsyncSession, now: int) -> int:
    """Delete records whose expiry has passed. Returns the count removed."""
    stmt = delete(ProofNonceEntity).where(ProofNonceEntity.expires_at <= now)
    result = await session.execute(stmt)
    return result.rowcount or 0
