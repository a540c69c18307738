"""Scripted admin console over the Deal API.

Mirrors the /admin page: every action calls the API, then reloads the deal
list. Failures raise ``AdminActionError`` so the operator always sees them.
"""

from __future__ import annotations

from typing import Optional

import httpx
import structlog

from app.schemas.deal import DealResponse

logger = structlog.get_logger()


class AdminActionError(Exception):
    """An admin action was rejected or failed."""

    def __init__(self, action: str, status_code: int | None, message: str):
        super().__init__(f"{action} failed: {message}")
        self.action = action
        self.status_code = status_code
        self.message = message


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return response.reason_phrase


class AdminConsole:
    """Manage deals through the authenticated Deal API.

    ``client`` must carry the base URL and the admin credentials, e.g.
    ``httpx.AsyncClient(base_url=..., auth=("admin", password))``.
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client
        self.deals: list[DealResponse] = []

    async def _request(self, action: str, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("admin_action_failed", action=action, error=str(exc))
            raise AdminActionError(action, None, str(exc)) from exc

        if not response.is_success:
            message = _error_message(response)
            logger.error(
                "admin_action_failed",
                action=action,
                status_code=response.status_code,
                error=message,
            )
            raise AdminActionError(action, response.status_code, message)
        return response

    async def refresh(self) -> list[DealResponse]:
        """Reload all deals (drafts and published)."""
        response = await self._request("load", "GET", "/api/deals")
        self.deals = [DealResponse.model_validate(d) for d in response.json()["data"]]
        return self.deals

    async def create(
        self,
        title: str,
        deal_url: str,
        coupon_code: Optional[str] = None,
        subtitle: Optional[str] = None,
    ) -> DealResponse:
        """Save a new deal as a draft."""
        response = await self._request(
            "create",
            "POST",
            "/api/deals",
            json={
                "title": title,
                "dealUrl": deal_url,
                "couponCode": coupon_code,
                "subtitle": subtitle,
            },
        )
        deal = DealResponse.model_validate(response.json()["data"])
        await self.refresh()
        return deal

    async def set_published(self, deal_id: str, published: bool) -> DealResponse:
        response = await self._request(
            "publish",
            "PATCH",
            f"/api/deals/{deal_id}",
            json={"published": published},
        )
        deal = DealResponse.model_validate(response.json()["data"])
        await self.refresh()
        return deal

    async def toggle_published(self, deal_id: str) -> DealResponse:
        """Flip a deal between draft and published."""
        current = next((d for d in self.deals if d.id == deal_id), None)
        if current is None:
            raise AdminActionError("publish", None, f"Unknown deal: {deal_id}")
        return await self.set_published(deal_id, not current.published)

    async def remove(self, deal_id: str) -> None:
        await self._request("delete", "DELETE", f"/api/deals/{deal_id}")
        await self.refresh()
