"""
SQLAlchemy ORM models.

A single table:

- InterfaceStat: one row per (cycle, interface) report
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, BigInteger, DateTime, Float

from netrate.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InterfaceStat(Base):
    """
    What the collector reported for one interface in one cycle.

    Typical usage:
    - the collector folds a fresh interface table into the StatStore
    - turns every store entry into an InterfaceStat
    - commits them together
    """

    __tablename__ = "interface_stats"

    id = Column(Integer, primary_key=True, index=True)

    # When the cycle was reported (wall clock, for display only)
    ts = Column(DateTime, index=True, default=_utcnow, nullable=False)

    if_name = Column(String(64), index=True, nullable=False)

    # Accumulated since the collector started
    total_in_bytes = Column(BigInteger, nullable=False)
    total_out_bytes = Column(BigInteger, nullable=False)

    in_bytes_per_sec = Column(Float, nullable=False)
    out_bytes_per_sec = Column(Float, nullable=False)
