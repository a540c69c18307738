"""Public listing page controller.

Holds the offer snapshot and UI state for one browsing session, loads live
data, and records copy/visit usage in a local counter store. The visible
list is always recomputed from the snapshot through ``catalog.build_listing``.
"""

from __future__ import annotations

import json
import re
from dataclasses import replace
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence

import httpx
import structlog

from app.schemas.deal import DealResponse
from app.schemas.offer import Offer
from app.services.catalog import (
    SEED_OFFERS,
    ListingState,
    build_listing,
    deals_to_offers,
)

logger = structlog.get_logger()

DealsFetcher = Callable[[], Awaitable[Sequence[DealResponse]]]
OffersFetcher = Callable[[], Awaitable[Sequence[Offer]]]

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


class UsageStore:
    """Per-offer usage counters persisted as a JSON object on disk.

    Unreadable or missing storage reads as empty. Counters stay local and
    are never reported to the server.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def snapshot(self) -> dict[str, int]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
        if not isinstance(raw, dict):
            return {}
        counts: dict[str, int] = {}
        for key, value in raw.items():
            if isinstance(value, int) and not isinstance(value, bool):
                counts[str(key)] = value
        return counts

    def get(self, offer_id: str) -> int:
        return self.snapshot().get(offer_id, 0)

    def increment(self, offer_id: str) -> int:
        """Add one use for ``offer_id`` and persist immediately."""
        counts = self.snapshot()
        counts[offer_id] = counts.get(offer_id, 0) + 1
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(counts, ensure_ascii=False), encoding="utf-8")
        return counts[offer_id]


def normalize_url(url: str) -> str:
    """Prefix ``https://`` to destination links that have no scheme."""
    url = url.strip()
    if not _SCHEME_RE.match(url):
        url = f"https://{url}"
    return url


def http_fetchers(
    client: httpx.AsyncClient,
    keywords: str | None = None,
) -> tuple[DealsFetcher, OffersFetcher]:
    """Build fetchers that read published deals and external offers over HTTP."""

    async def fetch_deals() -> list[DealResponse]:
        response = await client.get("/api/deals", params={"published": "true"})
        response.raise_for_status()
        payload = response.json()
        return [DealResponse.model_validate(d) for d in payload.get("data") or []]

    async def fetch_external() -> list[Offer]:
        params = {"q": keywords} if keywords else None
        response = await client.get("/api/coupons", params=params)
        response.raise_for_status()
        return [Offer.model_validate(o) for o in response.json()]

    return fetch_deals, fetch_external


class ListingPage:
    """State holder for the public coupon listing."""

    def __init__(
        self,
        fetch_deals: DealsFetcher,
        fetch_external: Optional[OffersFetcher] = None,
        usage: Optional[UsageStore] = None,
        seed: Sequence[Offer] = SEED_OFFERS,
    ):
        self._fetch_deals = fetch_deals
        self._fetch_external = fetch_external
        self._seed = tuple(seed)
        self._generation = 0
        self.usage = usage
        self.offers: tuple[Offer, ...] = self._seed
        self.state = ListingState()

    async def load(self) -> bool:
        """Fetch live offers and replace the snapshot.

        Returns False when a newer load started while this one was in flight;
        its result is discarded.
        """
        self._generation += 1
        generation = self._generation

        offers = await self._fetch_offers()

        if generation != self._generation:
            logger.info("listing_load_stale", generation=generation, latest=self._generation)
            return False

        self.offers = tuple(offers)
        return True

    async def _fetch_offers(self) -> list[Offer]:
        offers: list[Offer] = []
        try:
            offers.extend(deals_to_offers(await self._fetch_deals()))
        except Exception as exc:
            logger.warning("listing_deals_fetch_failed", error=str(exc))
            return list(self._seed)

        if self._fetch_external is not None:
            try:
                offers.extend(await self._fetch_external())
            except Exception as exc:
                logger.warning("listing_external_fetch_failed", error=str(exc))

        return offers or list(self._seed)

    def set_query(self, query: str) -> None:
        self.state = replace(self.state, query=query)

    def set_store(self, store: str) -> None:
        self.state = ListingState.from_params(self.state.query, store, self.state.sort)

    def set_sort(self, sort: str) -> None:
        self.state = ListingState.from_params(self.state.query, self.state.store, sort)

    def view(self) -> list[Offer]:
        """Visible offers for the current snapshot and UI state."""
        local_uses = self.usage.snapshot() if self.usage else {}
        return build_listing(self.offers, self.state, local_uses)

    def stores(self) -> list[str]:
        """Store labels present in the current snapshot, in first-seen order."""
        return list(dict.fromkeys(o.store for o in self.offers))

    def _find(self, offer_id: str) -> Offer:
        for offer in self.offers:
            if offer.id == offer_id:
                return offer
        raise KeyError(offer_id)

    def copy_code(self, offer_id: str) -> str:
        """Return an offer's code, counting one use. Code-less offers are not counted."""
        offer = self._find(offer_id)
        if offer.code and self.usage is not None:
            self.usage.increment(offer.id)
        return offer.code

    def visit(self, offer_id: str) -> str:
        """Return an offer's destination URL, counting one use."""
        offer = self._find(offer_id)
        if self.usage is not None:
            self.usage.increment(offer.id)
        return normalize_url(offer.url)
