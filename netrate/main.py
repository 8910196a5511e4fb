"""
Entrypoint module for uvicorn.

Run as:

    uvicorn netrate.main:app --reload
"""

from netrate.api import app  # noqa: F401
