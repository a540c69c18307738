"""Deal CRUD endpoints used by the admin console and the public listing."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.deal import (
    DealCreate,
    DealEnvelope,
    DealListEnvelope,
    DealResponse,
    DealUpdate,
)
from app.services import deal_store

router = APIRouter(prefix="/api/deals", tags=["deals"])


@router.get("", response_model=DealListEnvelope)
async def list_deals(
    db: AsyncSession = Depends(get_db),
    published: bool = False,
):
    """List deals, newest first; ``?published=true`` keeps only published ones."""
    deals = await deal_store.list_deals(db, published_only=published)
    return DealListEnvelope(data=[DealResponse.model_validate(d) for d in deals])


@router.post("", response_model=DealEnvelope, status_code=201)
async def create_deal(
    payload: DealCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a new draft deal."""
    deal = await deal_store.create_deal(db, payload)
    return DealEnvelope(data=DealResponse.model_validate(deal))


@router.patch("/{deal_id}", response_model=DealEnvelope)
async def update_deal(
    deal_id: str,
    payload: DealUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Partially update a deal (including publish/unpublish)."""
    deal = await deal_store.update_deal(db, deal_id, payload)
    return DealEnvelope(data=DealResponse.model_validate(deal))


@router.delete("/{deal_id}")
async def delete_deal(
    deal_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Delete a deal. Deleting an unknown id is not an error."""
    await deal_store.delete_deal(db, deal_id)
    return {"ok": True}
