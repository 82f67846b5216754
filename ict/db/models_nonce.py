"""SQLAlchemy model for consumed proof-of-possession identifiers."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ict.db.base import BaseEntity


class ProofNonceEntity(BaseEntity):
    """A ``jti`` that has been accepted once and may not be reused."""

    __tablename__ = "proof_nonces"

    identifier: Mapped[str] = mapped_column(String(255), primary_key=True)
    # Unix seconds; the record may be purged once this has passed.
    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
