# studio_booking/db/models/slot_ledger.py

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from studio_booking.db.session import Base, UTCDateTime, utcnow


class SlotLedger(Base):
    """Version counter per bookable resource.

    Every write that occupies a window bumps `version` with a compare-and-swap
    in the same transaction as the insert, so two bookings that both passed the
    overlap check cannot both commit.
    """

    __tablename__ = "slot_ledgers"

    resource: Mapped[str] = mapped_column(sa.String(64), primary_key=True)
    version: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
