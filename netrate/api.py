"""
FastAPI application exposing interface throughput.

Endpoints
---------
- GET /health                    -> Simple liveness check
- GET /interfaces/latest         -> Latest report per interface
- GET /interfaces/summary        -> Per-interface totals and peak rates
- GET /interfaces/{name}/history -> Most recent reports for one interface
"""

from typing import List

from fastapi import FastAPI, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from netrate.database import SessionLocal, init_db
from netrate.models import InterfaceStat
from netrate.schemas import InterfaceStatOut, InterfaceSummaryOut


# ---------------------------------------------------------------------------
# Database bootstrap
# ---------------------------------------------------------------------------

# Make sure tables exist even if the collector has not been run yet.
init_db()


app = FastAPI(
    title="Interface Throughput API",
    version="0.1.0",
)


# ---------------------------------------------------------------------------
# Dependency: one DB session per request
# ---------------------------------------------------------------------------

def get_db():
    """
    FastAPI dependency that provides a SQLAlchemy session.

    The session is created at the start of the request and closed at the end.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/health")
def health() -> dict:
    """Simple liveness endpoint used for health checks."""
    return {"status": "ok"}


@app.get("/interfaces/latest", response_model=List[InterfaceStatOut])
def get_latest_stats(db: Session = Depends(get_db)):
    """
    Return the latest report per interface.

    Rows are inserted in cycle order, so the highest id per `if_name`
    is the newest one.
    """
    subq = (
        db.query(func.max(InterfaceStat.id).label("max_id"))
        .group_by(InterfaceStat.if_name)
        .subquery()
    )

    q = (
        db.query(InterfaceStat)
        .join(subq, InterfaceStat.id == subq.c.max_id)
        .order_by(InterfaceStat.if_name)
    )

    return q.all()


@app.get("/interfaces/summary", response_model=List[InterfaceSummaryOut])
def get_interface_summary(db: Session = Depends(get_db)):
    """
    Return per-interface figures over everything stored.

    Totals come from the newest row, since they are already accumulated
    by the collector; peaks are the maximum rates across all rows.
    """
    rows = (
        db.query(
            InterfaceStat.if_name,
            func.count(InterfaceStat.id),
            func.max(InterfaceStat.id),
            func.max(InterfaceStat.in_bytes_per_sec),
            func.max(InterfaceStat.out_bytes_per_sec),
            func.min(InterfaceStat.ts),
            func.max(InterfaceStat.ts),
        )
        .group_by(InterfaceStat.if_name)
        .order_by(InterfaceStat.if_name)
        .all()
    )

    summaries: list[InterfaceSummaryOut] = []
    for name, count, last_id, peak_in, peak_out, first_ts, last_ts in rows:
        last = db.get(InterfaceStat, last_id)
        summaries.append(
            InterfaceSummaryOut(
                if_name=name,
                sample_count=count,
                total_in_bytes=last.total_in_bytes,
                total_out_bytes=last.total_out_bytes,
                peak_in_bytes_per_sec=peak_in,
                peak_out_bytes_per_sec=peak_out,
                first_sample_time=first_ts,
                last_sample_time=last_ts,
            )
        )

    return summaries


@app.get("/interfaces/{if_name}/history", response_model=List[InterfaceStatOut])
def get_interface_history(
    if_name: str,
    limit: int = Query(default=100, ge=1, le=10_000),
    db: Session = Depends(get_db),
):
    """Return the newest `limit` reports for one interface, newest first."""
    rows = (
        db.query(InterfaceStat)
        .filter(InterfaceStat.if_name == if_name)
        .order_by(InterfaceStat.id.desc())
        .limit(limit)
        .all()
    )
    if not rows:
        raise HTTPException(status_code=404, detail=f"Unknown interface {if_name!r}")
    return rows
