"""Public listing pipeline.

Pure functions that turn an offer snapshot plus the page's UI state into the
list shown on the public page: usage augmentation, store filter, text filter,
then sort.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Mapping, Sequence
from zoneinfo import ZoneInfo

from app.schemas.deal import DealResponse
from app.schemas.offer import Offer

ALL_STORES = "all"
DEAL_STORE = "Outros"

STORES = ["Nike", "Adidas", "iShop", "Insider Store", "Amazon", DEAL_STORE]

SORT_RECENT = "recent"
SORT_POPULAR = "popular"
SORT_EXPIRING = "expiring"
SORT_MODES = (SORT_RECENT, SORT_POPULAR, SORT_EXPIRING)


@dataclass(frozen=True)
class ListingState:
    """UI state of the public page."""

    query: str = ""
    store: str = ALL_STORES
    sort: str = SORT_RECENT

    @classmethod
    def from_params(
        cls,
        query: str | None = None,
        store: str | None = None,
        sort: str | None = None,
    ) -> "ListingState":
        """Build a state from loose request parameters."""
        sort = (sort or SORT_RECENT).strip().lower()
        if sort not in SORT_MODES:
            sort = SORT_RECENT
        return cls(
            query=query or "",
            store=(store or "").strip() or ALL_STORES,
            sort=sort,
        )


_SEED_VERIFIED = datetime(2026, 10, 1, tzinfo=timezone.utc)
_LOCAL_TZ = ZoneInfo("America/Sao_Paulo")


def _end_of_day(year: int, month: int, day: int) -> datetime:
    """Last second of a local calendar day, so date-only expiries keep their date."""
    return datetime(year, month, day, 23, 59, 59, tzinfo=_LOCAL_TZ)


# Fallback offers shown when no live data is available.
SEED_OFFERS: tuple[Offer, ...] = (
    Offer(
        id="nike-10off",
        store="Nike",
        title="10% OFF em itens selecionados",
        code="NIKE10",
        description="Válido em produtos selecionados. Veja regras no site.",
        url="https://www.nike.com/br",
        expires_at=_end_of_day(2026, 12, 31),
        verified_at=_SEED_VERIFIED,
        tags=["Seleção", "Outlet"],
        uses=124,
    ),
    Offer(
        id="adidas-frete-gratis",
        store="Adidas",
        title="Frete grátis acima de R$299",
        code="",
        description="Aplicado automaticamente no checkout.",
        url="https://www.adidas.com.br",
        verified_at=_SEED_VERIFIED,
        tags=["Frete grátis"],
        uses=342,
    ),
    Offer(
        id="ishop-iphone-5off",
        store="iShop",
        title="5% OFF à vista em iPhone selecionado",
        code="ISHOP5",
        url="https://www.ishop.com.br",
        expires_at=_end_of_day(2026, 11, 15),
        verified_at=_SEED_VERIFIED,
        tags=["Apple", "iPhone"],
        uses=67,
    ),
    Offer(
        id="insider-15off",
        store="Insider Store",
        title="15% OFF na primeira compra",
        code="INSIDER15",
        url="https://www.insiderstore.com.br",
        expires_at=_end_of_day(2027, 1, 31),
        verified_at=_SEED_VERIFIED,
        tags=["Primeira compra"],
        uses=201,
    ),
)


def deal_to_offer(deal: DealResponse) -> Offer:
    """Map a published deal to a listing offer."""
    return Offer(
        id=deal.id,
        store=DEAL_STORE,
        title=deal.title,
        code=deal.coupon_code or "",
        description=deal.subtitle,
        url=deal.deal_url,
        verified_at=deal.updated_at,
        tags=["Cupom"] if deal.coupon_code else ["Oferta"],
    )


def deals_to_offers(deals: Iterable[DealResponse]) -> list[Offer]:
    return [deal_to_offer(d) for d in deals]


def apply_usage(offers: Iterable[Offer], local_uses: Mapping[str, int]) -> list[Offer]:
    """Add locally accumulated usage to each offer's base count."""
    return [
        offer.model_copy(update={"uses": offer.uses + int(local_uses.get(offer.id, 0))})
        for offer in offers
    ]


def filter_by_store(offers: Iterable[Offer], store: str) -> list[Offer]:
    if not store or store == ALL_STORES:
        return list(offers)
    return [o for o in offers if o.store == store]


def matches_query(offer: Offer, query: str) -> bool:
    """Case-insensitive substring match on title, description, tags, store or code.

    Surrounding whitespace in the query is ignored, so " nike " matches like
    "nike".
    """
    q = query.strip().lower()
    if not q:
        return True
    return (
        q in offer.title.lower()
        or q in (offer.description or "").lower()
        or any(q in tag.lower() for tag in offer.tags)
        or q in offer.store.lower()
        or q in (offer.code or "").lower()
    )


def filter_by_query(offers: Iterable[Offer], query: str) -> list[Offer]:
    if not query.strip():
        return list(offers)
    return [o for o in offers if matches_query(o, query)]


def sort_offers(offers: Iterable[Offer], mode: str) -> list[Offer]:
    """Sort offers; stable, so ties keep their incoming order."""
    offers = list(offers)
    if mode == SORT_POPULAR:
        return sorted(offers, key=lambda o: -o.uses)
    if mode == SORT_EXPIRING:
        # No expiry sorts last.
        return sorted(
            offers,
            key=lambda o: (o.expires_at is None, o.expires_at.timestamp() if o.expires_at else 0.0),
        )
    # Recent: missing verification counts as earliest.
    return sorted(
        offers,
        key=lambda o: -o.verified_at.timestamp() if o.verified_at else float("inf"),
    )


def build_listing(
    offers: Sequence[Offer],
    state: ListingState,
    local_uses: Mapping[str, int] | None = None,
) -> list[Offer]:
    """Compute the visible listing from an offer snapshot and UI state."""
    visible = apply_usage(offers, local_uses or {})
    visible = filter_by_store(visible, state.store)
    visible = filter_by_query(visible, state.query)
    return sort_offers(visible, state.sort)
