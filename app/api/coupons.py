"""External offer search endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.config import get_settings
from app.schemas.offer import Offer
from app.services.offer_provider import AmazonOfferProvider

router = APIRouter(prefix="/api/coupons", tags=["coupons"])


def get_offer_provider() -> AmazonOfferProvider:
    """Dependency for the external offer provider."""
    return AmazonOfferProvider(get_settings())


@router.get("", response_model=list[Offer])
async def search_coupons(
    q: Optional[str] = Query(None),
    provider: AmazonOfferProvider = Depends(get_offer_provider),
):
    """Search external product offers.

    Always answers 200; an upstream failure yields an empty list.
    """
    return await provider.search(q)
