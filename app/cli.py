"""CLI entrypoints.

``cupomhub-dev`` runs the server. ``cupomhub-admin`` manages deals through the
Deal API, and ``cupomhub-coupons`` browses the listing from a terminal, keeping
usage counters in a local file the way the browser keeps them in localStorage.
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

import httpx
import uvicorn

from app.config import get_settings
from app.services.admin_console import AdminActionError, AdminConsole
from app.services.catalog import ALL_STORES, SORT_MODES, SORT_RECENT
from app.services.listing_page import ListingPage, UsageStore, http_fetchers


def dev() -> None:
    """Run the CupomHub dev server with reload."""
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)


def _api_client() -> httpx.AsyncClient:
    settings = get_settings()
    return httpx.AsyncClient(
        base_url=settings.api_base_url,
        auth=("admin", settings.admin_password),
        timeout=10.0,
    )


def build_admin_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cupomhub-admin", description="Manage CupomHub deals.")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="List all deals")

    create = commands.add_parser("create", help="Save a new deal as a draft")
    create.add_argument("--title", required=True)
    create.add_argument("--url", required=True, help="Deal link")
    create.add_argument("--code", default=None, help="Coupon code")
    create.add_argument("--subtitle", default=None)

    for name, help_text in (
        ("publish", "Publish a deal"),
        ("unpublish", "Move a deal back to draft"),
        ("toggle", "Flip a deal between draft and published"),
        ("delete", "Delete a deal"),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("deal_id")

    return parser


def build_coupons_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cupomhub-coupons", description="Browse CupomHub offers.")
    parser.add_argument("--external", action="store_true", help="Include Amazon offers")
    commands = parser.add_subparsers(dest="command", required=True)

    listing = commands.add_parser("list", help="Show offers")
    listing.add_argument("--query", default="")
    listing.add_argument("--store", default=ALL_STORES)
    listing.add_argument("--sort", default=SORT_RECENT, choices=SORT_MODES)

    copy = commands.add_parser("copy", help="Print an offer's code and count one use")
    copy.add_argument("offer_id")

    visit = commands.add_parser("visit", help="Print an offer's link and count one use")
    visit.add_argument("offer_id")

    return parser


async def run_admin(args: argparse.Namespace, client: httpx.AsyncClient) -> int:
    """Execute one admin command. Returns the process exit code."""
    console = AdminConsole(client)
    try:
        if args.command == "create":
            deal = await console.create(args.title, args.url, args.code, args.subtitle)
            print(f"Created draft {deal.id}")
        elif args.command in ("publish", "unpublish"):
            deal = await console.set_published(args.deal_id, args.command == "publish")
            print(f"{deal.id}: {'Published' if deal.published else 'Draft'}")
        elif args.command == "toggle":
            await console.refresh()
            deal = await console.toggle_published(args.deal_id)
            print(f"{deal.id}: {'Published' if deal.published else 'Draft'}")
        elif args.command == "delete":
            await console.remove(args.deal_id)
            print(f"Deleted {args.deal_id}")
        else:
            await console.refresh()

        if args.command == "list":
            for deal in console.deals:
                status = "Published" if deal.published else "Draft"
                code = f"  [{deal.coupon_code}]" if deal.coupon_code else ""
                print(f"{deal.id}  {status:<9}  {deal.title}{code}  {deal.deal_url}")
    except AdminActionError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    return 0


async def run_coupons(
    args: argparse.Namespace,
    client: httpx.AsyncClient,
    usage: UsageStore,
) -> int:
    """Execute one listing command. Returns the process exit code."""
    fetch_deals, fetch_external = http_fetchers(client)
    page = ListingPage(fetch_deals, fetch_external if args.external else None, usage=usage)
    await page.load()

    if args.command == "list":
        page.set_query(args.query)
        page.set_store(args.store)
        page.set_sort(args.sort)
        for offer in page.view():
            code = offer.code or "-"
            print(f"{offer.id}  {offer.store}  {offer.title}  code={code}  usos={offer.uses}")
        return 0

    try:
        if args.command == "copy":
            code = page.copy_code(args.offer_id)
            if not code:
                print(f"{args.offer_id} has no code", file=sys.stderr)
                return 1
            print(code)
        else:
            print(page.visit(args.offer_id))
    except KeyError:
        print(f"Unknown offer: {args.offer_id}", file=sys.stderr)
        return 1
    return 0


async def _admin_main(args: argparse.Namespace) -> int:
    async with _api_client() as client:
        return await run_admin(args, client)


async def _coupons_main(args: argparse.Namespace) -> int:
    async with _api_client() as client:
        return await run_coupons(args, client, UsageStore(get_settings().usage_store_path))


def admin(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for ``cupomhub-admin``."""
    args = build_admin_parser().parse_args(argv)
    sys.exit(asyncio.run(_admin_main(args)))


def coupons(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for ``cupomhub-coupons``."""
    args = build_coupons_parser().parse_args(argv)
    sys.exit(asyncio.run(_coupons_main(args)))
