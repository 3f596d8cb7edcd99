"""
Shared crawl runtime data models.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.domain.vehicle import VehicleRecord


@dataclass(frozen=True)
class CandidateURL:
    """
    Canonical URL believed to be a vehicle detail page, tagged with the
    listing path it was discovered on.
    """

    url: str
    source_path: str


@dataclass(frozen=True)
class FetchedPage:
    """
    Successfully fetched document.
    """

    url: str
    final_url: str
    status_code: int
    text: str
    content_type: str | None = None


@dataclass(frozen=True)
class DetailOutcome:
    """
    Result of fetching and extracting one candidate in the worker pool.
    """

    index: int
    candidate: CandidateURL
    record: VehicleRecord | None = None
    error: str | None = None
    dropped: bool = False
