"""Amazon Product Advertising API (PA-API 5) offer provider.

Builds a signed SearchItems request for a keyword query and normalises the
response into listing offers. Any upstream failure degrades to an empty
result; callers never see provider errors.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import structlog
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.config import Settings
from app.schemas.offer import Offer

logger = structlog.get_logger()

PAAPI_PATH = "/paapi5/searchitems"
PAAPI_SERVICE = "ProductAdvertisingAPI"
PAAPI_TARGET = "com.amazon.paapi5.v1.ProductAdvertisingAPIv1.SearchItems"

ITEM_COUNT = 10
RESOURCES = [
    "Images.Primary.Large",
    "ItemInfo.Title",
    "Offers.Listings.Price",
]

STORE_LABEL = "Amazon"


def mask(value: str | None) -> str:
    """Return a short preview of a secret for diagnostics."""
    if not value:
        return "(missing)"
    return f"{value[:4]}...{value[-4:]}"


# --- Response shapes (every field optional; validated per item) ---


class _PaapiModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class _DisplayValue(_PaapiModel):
    display_value: Optional[str] = Field(default=None, alias="DisplayValue")


class _ItemInfo(_PaapiModel):
    title: Optional[_DisplayValue] = Field(default=None, alias="Title")


class _Price(_PaapiModel):
    display_amount: Optional[str] = Field(default=None, alias="DisplayAmount")


class _Listing(_PaapiModel):
    price: Optional[_Price] = Field(default=None, alias="Price")


class _Offers(_PaapiModel):
    listings: list[_Listing] = Field(default_factory=list, alias="Listings")


class _ImageSize(_PaapiModel):
    url: Optional[str] = Field(default=None, alias="URL")


class _PrimaryImage(_PaapiModel):
    large: Optional[_ImageSize] = Field(default=None, alias="Large")


class _Images(_PaapiModel):
    primary: Optional[_PrimaryImage] = Field(default=None, alias="Primary")


class SearchItem(_PaapiModel):
    """One PA-API search result item."""

    asin: Optional[str] = Field(default=None, alias="ASIN")
    detail_page_url: Optional[str] = Field(default=None, alias="DetailPageURL")
    item_info: Optional[_ItemInfo] = Field(default=None, alias="ItemInfo")
    offers: Optional[_Offers] = Field(default=None, alias="Offers")
    images: Optional[_Images] = Field(default=None, alias="Images")

    @property
    def title(self) -> Optional[str]:
        if self.item_info and self.item_info.title:
            return self.item_info.title.display_value
        return None

    @property
    def price(self) -> Optional[str]:
        if self.offers and self.offers.listings and self.offers.listings[0].price:
            return self.offers.listings[0].price.display_amount
        return None

    @property
    def image_url(self) -> Optional[str]:
        if self.images and self.images.primary and self.images.primary.large:
            return self.images.primary.large.url
        return None


def to_offer(item: SearchItem, verified_at: datetime | None = None) -> Offer | None:
    """Map a search item to an offer, or None if it lacks an ASIN, title or URL."""
    title = (item.title or "").strip()
    if not item.asin or not title or not item.detail_page_url:
        return None

    price = item.price
    return Offer(
        id=f"amz-{item.asin}",
        store=STORE_LABEL,
        title=title,
        code="",
        description=f"Preço: {price}" if price else None,
        url=item.detail_page_url,
        image_url=item.image_url,
        verified_at=verified_at or datetime.now(timezone.utc),
        tags=["Oferta"],
    )


def parse_search_response(data: Any) -> list[Offer]:
    """Normalise a SearchItems response body, dropping unusable items."""
    if not isinstance(data, dict):
        return []
    search_result = data.get("SearchResult") or {}
    raw_items = search_result.get("Items") if isinstance(search_result, dict) else None
    if not isinstance(raw_items, list):
        return []

    now = datetime.now(timezone.utc)
    offers: list[Offer] = []
    for raw in raw_items:
        try:
            item = SearchItem.model_validate(raw)
        except ValidationError:
            continue
        offer = to_offer(item, verified_at=now)
        if offer is not None:
            offers.append(offer)
    return offers


class AmazonOfferProvider:
    """Search Amazon products and expose them as code-less offers."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self._transport = transport

    @property
    def url(self) -> str:
        return f"https://{self.settings.amz_endpoint}{PAAPI_PATH}"

    def build_payload(self, keywords: str | None = None) -> dict:
        """Build the SearchItems request payload."""
        keywords = (keywords or "").strip() or self.settings.coupons_default_keywords
        return {
            "Keywords": keywords,
            "SearchIndex": "All",
            "ItemCount": ITEM_COUNT,
            "ItemPage": 1,
            "PartnerTag": self.settings.amz_associate_tag,
            "PartnerType": "Associates",
            "Marketplace": self.settings.amz_marketplace,
            "Resources": list(RESOURCES),
        }

    def sign(self, body: bytes) -> dict[str, str]:
        """Return request headers signed with AWS Signature V4."""
        request = AWSRequest(
            method="POST",
            url=self.url,
            data=body,
            headers={
                "host": self.settings.amz_endpoint,
                "content-type": "application/json; charset=UTF-8",
                "x-amz-target": PAAPI_TARGET,
                "content-encoding": "amz-1.0",
            },
        )
        credentials = Credentials(
            self.settings.amz_access_key_id,
            self.settings.amz_secret_access_key,
        )
        SigV4Auth(credentials, PAAPI_SERVICE, self.settings.amz_region).add_auth(request)
        return dict(request.headers.items())

    async def search(self, keywords: str | None = None) -> list[Offer]:
        """Search for offers. Returns [] on any upstream failure."""
        logger.debug(
            "paapi_config",
            key_id=mask(self.settings.amz_access_key_id),
            region=self.settings.amz_region,
            endpoint=self.settings.amz_endpoint,
            tag=self.settings.amz_associate_tag,
        )

        if not self.settings.amz_access_key_id or not self.settings.amz_secret_access_key:
            logger.warning("paapi_credentials_missing")
            return []

        payload = self.build_payload(keywords)
        body = json.dumps(payload).encode("utf-8")
        headers = self.sign(body)

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.amz_timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(self.url, content=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("paapi_fetch_error", error=str(exc))
            return []

        if not response.is_success:
            logger.error(
                "paapi_error",
                status_code=response.status_code,
                body=response.text[:2000],
            )
            return []

        try:
            data = response.json()
        except ValueError:
            logger.error("paapi_invalid_json", status_code=response.status_code)
            return []

        offers = parse_search_response(data)
        logger.info("paapi_search", keywords=payload["Keywords"], offers=len(offers))
        return offers
