"""Deal store - create/read/update/delete of rows in the ``deals`` table.

Every write touches exactly one row. Errors are raised as domain exceptions
and mapped to HTTP responses by the handlers registered in ``app.main``.
"""

from typing import Optional, Sequence

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.deal import Deal, utcnow
from app.schemas.deal import DealCreate, DealUpdate

logger = structlog.get_logger()

REQUIRED_FIELDS = ("title", "deal_url")
OPTIONAL_TEXT_FIELDS = ("coupon_code", "subtitle")


class DealStoreError(Exception):
    """Base error for deal store operations."""


class DealValidationError(DealStoreError):
    """Required deal fields are missing or blank."""


class DealNotFoundError(DealStoreError):
    """No deal matches the given identifier."""

    def __init__(self, deal_id: str):
        super().__init__(f"Deal not found: {deal_id}")
        self.deal_id = deal_id


def _clean_text(value: Optional[str]) -> Optional[str]:
    """Strip text and collapse blanks to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


async def list_deals(db: AsyncSession, published_only: bool = False) -> Sequence[Deal]:
    """List deals, newest first."""
    query = select(Deal).order_by(Deal.created_at.desc())
    if published_only:
        query = query.where(Deal.published.is_(True))

    result = await db.execute(query)
    return result.scalars().all()


async def get_deal(db: AsyncSession, deal_id: str) -> Deal:
    result = await db.execute(select(Deal).where(Deal.id == deal_id))
    deal = result.scalar_one_or_none()
    if deal is None:
        raise DealNotFoundError(deal_id)
    return deal


async def create_deal(db: AsyncSession, payload: DealCreate) -> Deal:
    """Create a new draft deal.

    ``title`` and ``deal_url`` are required; new deals are never published.
    """
    title = _clean_text(payload.title)
    deal_url = _clean_text(payload.deal_url)
    if not title or not deal_url:
        raise DealValidationError("title and dealUrl are required")

    deal = Deal(
        title=title,
        deal_url=deal_url,
        coupon_code=_clean_text(payload.coupon_code),
        subtitle=_clean_text(payload.subtitle),
        published=False,
    )
    db.add(deal)
    await db.flush()
    await db.refresh(deal)

    logger.info("deal_created", deal_id=deal.id, title=deal.title)
    return deal


async def update_deal(db: AsyncSession, deal_id: str, payload: DealUpdate) -> Deal:
    """Apply a partial update.

    Fields absent from the payload are left untouched. An explicit null
    clears ``coupon_code``/``subtitle``; ``title`` and ``deal_url`` can be
    changed but never emptied.
    """
    changes = payload.model_dump(exclude_unset=True)
    deal = await get_deal(db, deal_id)

    for field in REQUIRED_FIELDS:
        if field in changes:
            value = _clean_text(changes[field])
            if not value:
                raise DealValidationError(f"{field} cannot be empty")
            changes[field] = value

    for field in OPTIONAL_TEXT_FIELDS:
        if field in changes:
            changes[field] = _clean_text(changes[field])

    if "published" in changes:
        changes["published"] = bool(changes["published"])

    for field, value in changes.items():
        setattr(deal, field, value)
    deal.updated_at = utcnow()

    await db.flush()
    await db.refresh(deal)

    logger.info("deal_updated", deal_id=deal.id, fields=sorted(changes))
    return deal


async def delete_deal(db: AsyncSession, deal_id: str) -> int:
    """Delete a deal by id. Returns the number of rows removed (0 or 1)."""
    result = await db.execute(delete(Deal).where(Deal.id == deal_id))
    await db.flush()

    removed = result.rowcount or 0
    logger.info("deal_deleted", deal_id=deal_id, removed=removed)
    return removed
