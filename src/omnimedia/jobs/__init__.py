"""Scan job tracking for callers that poll scan status.

The tracker lives in ``omnimedia.jobs.tracker``; it is not imported here
because the datastores import the job models.
"""

from __future__ import annotations

from .models import JobStatus, ScanJob

__all__ = ["JobStatus", "ScanJob"]
