"""
app/domain/crawl.py

Domain models for crawl reconciliation and run summaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ReconcileResult:
    """
    Outcome of reconciling one dealer's normalized records with the store.
    """

    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def upserted(self) -> int:
        return self.inserted + self.updated + self.unchanged


@dataclass(frozen=True)
class CrawlSummary:
    """
    Summary for one dealer crawl run.

    Counts are always reported so a run that discovers pages but extracts
    nothing is visible as degraded rather than successful.
    """

    dealer_id: str
    discovered: int
    extracted: int
    dropped: int
    upserted: int
    inserted: int
    updated: int
    unchanged: int
    errors: int
    status: str
    timed_out: bool = False
    stale_marked: int = 0
    error_messages: list[str] = field(default_factory=list)
