"""Job identifier generation."""

from __future__ import annotations

from uuid import uuid4


def generate_job_id() -> str:
    """Return a new random job identifier (UUID4, 122 random bits)."""

    return str(uuid4())
