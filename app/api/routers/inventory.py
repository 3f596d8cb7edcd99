"""
app/api/routers/inventory.py

Read-only catalog search consumed by the search and chat layers.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.crawling.errors import StoreError
from app.domain.vehicle import VehicleQuery
from app.schemas.inventory import InventoryItemResponse, InventorySearchResponse
from app.services.dealer_crawl_service import DealerCrawlService, get_dealer_crawl_service
from db.session import get_db

router = APIRouter(tags=["inventory"])


@router.get("/inventory", response_model=InventorySearchResponse)
def search_inventory(
    dealer: str | None = Query(default=None, description="Dealer identifier"),
    q: str | None = Query(default=None, description="Free-text title match"),
    make: str | None = Query(default=None),
    model: str | None = Query(default=None),
    price_max: int | None = Query(default=None, ge=0),
    fuel: str | None = Query(default=None),
    transmission: str | None = Query(default=None),
    ulez: bool | None = Query(default=None),
    include_stale: bool = Query(default=False),
    limit: int = Query(default=24, ge=1, le=50),
    db: Session = Depends(get_db),
    crawl_service: DealerCrawlService = Depends(get_dealer_crawl_service),
) -> InventorySearchResponse:
    """
    Search the catalog, cheapest first.
    """

    query = VehicleQuery(
        dealer_id=dealer.strip().lower() if dealer else None,
        price_max=price_max,
        title_terms=tuple(term for term in (make, model, q) if term and term.strip()),
        fuel=fuel,
        transmission=transmission,
        ulez_compliant=ulez,
        include_stale=include_stale,
        limit=limit,
    )
    try:
        entries = crawl_service.search(db=db, query=query)
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return InventorySearchResponse(results=[InventoryItemResponse.from_entry(entry) for entry in entries])
