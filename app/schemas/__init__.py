"""Pydantic schemas for API request/response validation."""

from app.schemas.deal import (
    DealCreate,
    DealEnvelope,
    DealListEnvelope,
    DealResponse,
    DealUpdate,
)
from app.schemas.offer import Offer

__all__ = [
    "DealCreate",
    "DealEnvelope",
    "DealListEnvelope",
    "DealResponse",
    "DealUpdate",
    "Offer",
]
