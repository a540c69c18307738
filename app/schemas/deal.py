"""Deal schemas.

Request bodies use the admin console's camelCase names (``dealUrl``,
``couponCode``); responses mirror the ``deals`` table columns.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DealCreate(BaseModel):
    """Schema for creating a deal.

    Required fields are validated by the store so that a missing title or
    link is reported as a 400 with an ``error`` message.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    deal_url: Optional[str] = Field(default=None, alias="dealUrl")
    coupon_code: Optional[str] = Field(default=None, alias="couponCode")
    subtitle: Optional[str] = None


class DealUpdate(BaseModel):
    """Schema for partially updating a deal.

    Only fields present in the request body are applied; an explicit null
    clears the optional text fields.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    deal_url: Optional[str] = Field(default=None, alias="dealUrl")
    coupon_code: Optional[str] = Field(default=None, alias="couponCode")
    subtitle: Optional[str] = None
    published: Optional[bool] = None


class DealResponse(BaseModel):
    """Schema for deal responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    deal_url: str
    coupon_code: Optional[str] = None
    subtitle: Optional[str] = None
    published: bool
    created_at: datetime
    updated_at: datetime


class DealEnvelope(BaseModel):
    data: DealResponse


class DealListEnvelope(BaseModel):
    data: list[DealResponse]
