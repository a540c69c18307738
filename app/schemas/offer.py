"""Offer schema shared by the listing pipeline and the coupons endpoint."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Offer(BaseModel):
    """Display-ready offer derived from a deal or an external provider.

    An empty ``code`` means the offer has no coupon code. Timestamps are
    normalised to aware UTC so offers from different sources sort together.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    store: str
    title: str
    code: str = ""
    description: Optional[str] = None
    url: str
    image_url: Optional[str] = None
    expires_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    tags: list[str] = Field(default_factory=list)
    uses: int = 0

    @field_validator("expires_at", "verified_at")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
