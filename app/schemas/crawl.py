"""
app/schemas/crawl.py

Response schemas for dealer crawl runs.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.domain.crawl import CrawlSummary


class CrawlSummaryResponse(BaseModel):
    """
    API response model for one dealer crawl summary.
    """

    dealer_id: str
    discovered: int = Field(..., ge=0)
    extracted: int = Field(..., ge=0)
    dropped: int = Field(..., ge=0)
    upserted: int = Field(..., ge=0)
    inserted: int = Field(..., ge=0)
    updated: int = Field(..., ge=0)
    unchanged: int = Field(..., ge=0)
    errors: int = Field(..., ge=0)
    status: str
    timed_out: bool = False
    stale_marked: int = Field(default=0, ge=0)
    error_messages: list[str] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: CrawlSummary) -> "CrawlSummaryResponse":
        return cls(
            dealer_id=summary.dealer_id,
            discovered=summary.discovered,
            extracted=summary.extracted,
            dropped=summary.dropped,
            upserted=summary.upserted,
            inserted=summary.inserted,
            updated=summary.updated,
            unchanged=summary.unchanged,
            errors=summary.errors,
            status=summary.status,
            timed_out=summary.timed_out,
            stale_marked=summary.stale_marked,
            error_messages=summary.error_messages,
        )
