"""Tests for the external coupons endpoint."""

import httpx
import pytest

from app.api.coupons import get_offer_provider
from app.config import Settings
from app.main import app
from app.schemas.offer import Offer
from app.services.offer_provider import AmazonOfferProvider


class FakeProvider:
    def __init__(self, offers):
        self.offers = offers
        self.queries = []

    async def search(self, keywords=None):
        self.queries.append(keywords)
        return self.offers


@pytest.mark.asyncio
async def test_coupons_returns_normalized_offers(client):
    provider = FakeProvider([
        Offer(id="amz-B0001", store="Amazon", title="Tênis", url="https://amazon.com.br/dp/B0001", tags=["Oferta"]),
    ])
    app.dependency_overrides[get_offer_provider] = lambda: provider

    response = await client.get("/api/coupons", params={"q": "tenis"})
    assert response.status_code == 200

    body = response.json()
    assert len(body) == 1
    assert body[0]["id"] == "amz-B0001"
    assert body[0]["code"] == ""
    assert provider.queries == ["tenis"]


@pytest.mark.asyncio
async def test_coupons_upstream_failure_is_empty_200(client):
    def handler(request):
        return httpx.Response(503, json={"Errors": [{"Code": "TooManyRequests"}]})

    settings = Settings(amz_access_key_id="AKIAEXAMPLE1234", amz_secret_access_key="secret")
    app.dependency_overrides[get_offer_provider] = lambda: AmazonOfferProvider(
        settings, transport=httpx.MockTransport(handler)
    )

    response = await client.get("/api/coupons")
    assert response.status_code == 200
    assert response.json() == []
