"""SQLAlchemy models."""

from app.models.deal import Deal

__all__ = [
    "Deal",
]
