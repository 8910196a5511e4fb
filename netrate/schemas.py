"""
Pydantic models ("schemas") for API responses.

We keep these separate from the ORM models so the API layer
does not expose SQLAlchemy internals.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class InterfaceStatOut(BaseModel):
    """
    Full view of an InterfaceStat row for API responses.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    ts: datetime
    if_name: str
    total_in_bytes: int
    total_out_bytes: int
    in_bytes_per_sec: float
    out_bytes_per_sec: float


class InterfaceSummaryOut(BaseModel):
    """
    Per-interface figures used by /interfaces/summary.

    - sample_count: number of reported rows for this interface
    - total_in_bytes / total_out_bytes: latest accumulated totals
    - peak_in_bytes_per_sec / peak_out_bytes_per_sec: highest rates seen
    - first_sample_time / last_sample_time: time window of the data used
    """

    if_name: str
    sample_count: int
    total_in_bytes: int
    total_out_bytes: int
    peak_in_bytes_per_sec: float
    peak_out_bytes_per_sec: float
    first_sample_time: datetime
    last_sample_time: datetime
