"""Tests for the scripted admin console."""

import httpx
import pytest

from app.services.admin_console import AdminActionError, AdminConsole


@pytest.mark.asyncio
async def test_create_publish_delete_flow(client):
    console = AdminConsole(client)

    deal = await console.create("10% off", "https://x.com", coupon_code="SAVE10")
    assert deal.published is False
    assert [d.id for d in console.deals] == [deal.id]

    published = await console.toggle_published(deal.id)
    assert published.published is True
    assert console.deals[0].published is True

    public = await client.get("/api/deals", params={"published": "true"})
    assert [d["id"] for d in public.json()["data"]] == [deal.id]

    await console.toggle_published(deal.id)
    assert console.deals[0].published is False

    await console.remove(deal.id)
    assert console.deals == []


@pytest.mark.asyncio
async def test_create_failure_raises(client):
    console = AdminConsole(client)

    with pytest.raises(AdminActionError) as excinfo:
        await console.create("", "https://x.com")

    assert excinfo.value.status_code == 400
    assert "required" in excinfo.value.message


@pytest.mark.asyncio
async def test_publish_unknown_deal_raises(client):
    console = AdminConsole(client)

    with pytest.raises(AdminActionError) as excinfo:
        await console.set_published("missing-id", True)
    assert excinfo.value.status_code == 404

    with pytest.raises(AdminActionError):
        await console.toggle_published("missing-id")


@pytest.mark.asyncio
async def test_transport_failure_raises():
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://admin") as client:
        console = AdminConsole(client)
        with pytest.raises(AdminActionError) as excinfo:
            await console.refresh()

    assert excinfo.value.status_code is None
    assert excinfo.value.action == "load"


@pytest.mark.asyncio
async def test_rejected_credentials_surface_as_error():
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(401, text="Unauthorized")),
        base_url="http://admin",
    ) as client:
        console = AdminConsole(client)
        with pytest.raises(AdminActionError) as excinfo:
            await console.refresh()

    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "Unauthorized"
