"""Deal model for admin-managed coupons and offers."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class Deal(Base):
    """A deal created in the admin console; drafts until published."""

    __tablename__ = "deals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    deal_url: Mapped[str] = mapped_column(String(2000), nullable=False)
    coupon_code: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    subtitle: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Deal(id='{self.id}', title='{self.title[:30]}', published={self.published})>"
