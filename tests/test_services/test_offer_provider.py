"""Tests for the Amazon PA-API offer provider."""

import json

import httpx
import pytest

from app.config import Settings
from app.services.offer_provider import (
    PAAPI_TARGET,
    AmazonOfferProvider,
    mask,
    parse_search_response,
)


@pytest.fixture
def settings():
    return Settings(
        amz_access_key_id="AKIAEXAMPLEKEY1234",
        amz_secret_access_key="very-secret-key",
        amz_associate_tag="cupomhub-20",
        amz_region="us-east-1",
        amz_endpoint="webservices.amazon.com.br",
    )


def _item(asin="B0001", title="Tênis de corrida", url="https://www.amazon.com.br/dp/B0001", price="R$ 199,90"):
    item = {"ASIN": asin, "DetailPageURL": url, "ItemInfo": {"Title": {"DisplayValue": title}}}
    if price:
        item["Offers"] = {"Listings": [{"Price": {"DisplayAmount": price}}]}
    return item


def test_mask():
    assert mask("AKIAEXAMPLEKEY1234") == "AKIA...1234"
    assert mask("") == "(missing)"
    assert mask(None) == "(missing)"


def test_build_payload_uses_defaults(settings):
    provider = AmazonOfferProvider(settings)
    payload = provider.build_payload("  ")

    assert payload["Keywords"] == "Nike OR Adidas OR iPhone OR Insider"
    assert payload["ItemCount"] == 10
    assert payload["PartnerTag"] == "cupomhub-20"
    assert payload["PartnerType"] == "Associates"
    assert payload["Marketplace"] == "www.amazon.com.br"
    assert payload["Resources"] == [
        "Images.Primary.Large",
        "ItemInfo.Title",
        "Offers.Listings.Price",
    ]
    assert provider.build_payload("iphone 15")["Keywords"] == "iphone 15"


def test_sign_adds_sigv4_headers(settings):
    headers = AmazonOfferProvider(settings).sign(b"{}")
    lowered = {k.lower(): v for k, v in headers.items()}

    assert lowered["x-amz-target"] == PAAPI_TARGET
    assert lowered["content-encoding"] == "amz-1.0"
    assert "x-amz-date" in lowered
    authorization = lowered["authorization"]
    assert authorization.startswith("AWS4-HMAC-SHA256 Credential=AKIAEXAMPLEKEY1234/")
    assert "/us-east-1/ProductAdvertisingAPI/aws4_request" in authorization
    assert "very-secret-key" not in authorization


def test_parse_drops_incomplete_items():
    data = {
        "SearchResult": {
            "Items": [
                _item(),
                _item(asin=None),
                _item(asin="B0002", title=""),
                _item(asin="B0003", url=None),
                _item(asin="B0004", price=None),
                "garbage",
                {"ASIN": ["not", "a", "string"]},
            ]
        }
    }
    offers = parse_search_response(data)

    assert [o.id for o in offers] == ["amz-B0001", "amz-B0004"]
    first, second = offers
    assert first.store == "Amazon"
    assert first.code == ""
    assert first.description == "Preço: R$ 199,90"
    assert first.tags == ["Oferta"]
    assert first.verified_at is not None
    assert second.description is None


@pytest.mark.parametrize("data", [None, [], {}, {"SearchResult": None}, {"SearchResult": {"Items": "x"}}])
def test_parse_unexpected_shapes(data):
    assert parse_search_response(data) == []


@pytest.mark.asyncio
async def test_search_posts_signed_request(settings):
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"SearchResult": {"Items": [_item()]}})

    provider = AmazonOfferProvider(settings, transport=httpx.MockTransport(handler))
    offers = await provider.search("tenis")

    assert [o.id for o in offers] == ["amz-B0001"]
    assert seen["url"] == "https://webservices.amazon.com.br/paapi5/searchitems"
    assert seen["body"]["Keywords"] == "tenis"
    assert seen["headers"]["x-amz-target"] == PAAPI_TARGET
    assert seen["headers"]["authorization"].startswith("AWS4-HMAC-SHA256")


@pytest.mark.asyncio
async def test_search_non_success_returns_empty(settings):
    provider = AmazonOfferProvider(
        settings,
        transport=httpx.MockTransport(lambda request: httpx.Response(401, json={"Errors": []})),
    )
    assert await provider.search("x") == []


@pytest.mark.asyncio
async def test_search_transport_error_returns_empty(settings):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = AmazonOfferProvider(settings, transport=httpx.MockTransport(handler))
    assert await provider.search("x") == []


@pytest.mark.asyncio
async def test_search_invalid_json_returns_empty(settings):
    provider = AmazonOfferProvider(
        settings,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>")),
    )
    assert await provider.search("x") == []


@pytest.mark.asyncio
async def test_search_without_credentials_skips_request():
    def handler(request):
        raise AssertionError("no request expected")

    provider = AmazonOfferProvider(Settings(amz_access_key_id="", amz_secret_access_key=""), transport=httpx.MockTransport(handler))
    assert await provider.search() == []
