"""
app/api/routers/crawl.py

Dealer crawl trigger endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import require_crawl_token
from app.crawling.errors import ConfigurationError, StoreError
from app.schemas.crawl import CrawlSummaryResponse
from app.services.dealer_crawl_service import DealerCrawlService, get_dealer_crawl_service
from db.session import get_db

router = APIRouter(tags=["crawl"])


@router.post(
    "/crawl",
    response_model=CrawlSummaryResponse,
    dependencies=[Depends(require_crawl_token)],
)
def crawl_dealer(
    dealer: str = Query(..., min_length=1, description="Dealer identifier"),
    db: Session = Depends(get_db),
    crawl_service: DealerCrawlService = Depends(get_dealer_crawl_service),
) -> CrawlSummaryResponse:
    """
    Crawl one dealer website and reconcile its catalog.

    A run with per-page failures still returns 200 with error counts;
    a dealer that cannot be crawled at all is a 404.
    """

    try:
        summary = crawl_service.crawl(db=db, dealer_id=dealer)
    except ConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return CrawlSummaryResponse.from_summary(summary)
