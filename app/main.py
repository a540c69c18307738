"""FastAPI application entry point."""

import base64
import logging
import secrets
import time
from contextlib import asynccontextmanager
from datetime import datetime
from zoneinfo import ZoneInfo

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import get_settings
from app.database import get_db, init_db
from app.schemas.deal import DealResponse
from app.services import deal_store
from app.services.catalog import ALL_STORES, SORT_RECENT, STORES, ListingState
from app.services.deal_store import DealNotFoundError, DealValidationError
from app.services.listing_page import ListingPage
from app.services.offer_provider import AmazonOfferProvider

# Ensure structlog has a sink in container/runtime logs.
logging.basicConfig(level=logging.INFO, format="%(message)s")

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()
settings = get_settings()

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting CupomHub", version=VERSION)

    settings.storage_dir.mkdir(parents=True, exist_ok=True)

    await init_db()
    logger.info("Database initialized")

    yield

    # Shutdown
    logger.info("Shutting down CupomHub")


# Create FastAPI app
app = FastAPI(
    title="CupomHub",
    description="Cupons e ofertas",
    version=VERSION,
    lifespan=lifespan,
)


PROTECTED_PREFIXES = ("/admin", "/api/deals")
AUTH_CHALLENGE = {"WWW-Authenticate": 'Basic realm="Admin"'}


def _is_protected_path(path: str) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PROTECTED_PREFIXES)


def _password_matches(provided: str, expected: str) -> bool:
    """Exact match, compared in constant time."""
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


class BasicAuthGateMiddleware(BaseHTTPMiddleware):
    """Require the shared admin password (HTTP Basic) on admin paths.

    The username is ignored; only the password is checked. No session is
    kept, so clients resend the credential on every request.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not settings.auth_enabled or not _is_protected_path(path):
            return await call_next(request)

        started = time.perf_counter()

        def _blocked(response):
            logger.info(
                "api_request_blocked",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            return response

        header = request.headers.get("authorization", "")
        if not header.startswith("Basic "):
            return _blocked(PlainTextResponse("Auth required", status_code=401, headers=AUTH_CHALLENGE))

        token = header[len("Basic "):].strip()
        # Accept unpadded tokens.
        token += "=" * (-len(token) % 4)
        try:
            decoded = base64.b64decode(token, validate=True).decode("utf-8")
        except ValueError:
            return _blocked(PlainTextResponse("Invalid auth header", status_code=400))

        # Format is username:password; the username is not checked.
        _, _, password = decoded.partition(":")
        if not _password_matches(password, settings.admin_password):
            return _blocked(PlainTextResponse("Unauthorized", status_code=401, headers=AUTH_CHALLENGE))

        response = await call_next(request)
        if path.startswith("/api/"):
            logger.info(
                "api_request",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
        return response


app.add_middleware(BasicAuthGateMiddleware)


# Error responses use the {"error": ...} shape expected by the admin console.
@app.exception_handler(DealValidationError)
async def deal_validation_error_handler(request: Request, exc: DealValidationError):
    return JSONResponse({"error": str(exc)}, status_code=400)


@app.exception_handler(DealNotFoundError)
async def deal_not_found_handler(request: Request, exc: DealNotFoundError):
    return JSONResponse({"error": str(exc)}, status_code=404)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    messages = [
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    ]
    return JSONResponse({"error": "; ".join(messages) or "Invalid request"}, status_code=400)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("database_error", method=request.method, path=request.url.path)
    return JSONResponse({"error": str(exc)}, status_code=500)


# Mount static files
app.mount(
    "/static",
    StaticFiles(directory=settings.static_dir),
    name="static",
)

# Setup templates
templates = Jinja2Templates(directory=settings.templates_dir)

DISPLAY_TZ = ZoneInfo("America/Sao_Paulo")


def format_date(value: datetime | None) -> str:
    """Render a timestamp as a pt-BR date, or an em dash when absent."""
    if value is None:
        return "—"
    return value.astimezone(DISPLAY_TZ).strftime("%d/%m/%Y")


templates.env.filters["format_date"] = format_date


# Import and include routers
from app.api import coupons, deals  # noqa: E402

app.include_router(deals.router)
app.include_router(coupons.router)


# Page routes
@app.get("/", response_class=HTMLResponse)
async def listing_page(
    request: Request,
    q: str = "",
    store: str = ALL_STORES,
    sort: str = SORT_RECENT,
    db: AsyncSession = Depends(get_db),
):
    """Public coupon listing."""

    async def fetch_deals():
        rows = await deal_store.list_deals(db, published_only=True)
        return [DealResponse.model_validate(d) for d in rows]

    fetch_external = None
    if settings.listing_include_external:
        fetch_external = AmazonOfferProvider(settings).search

    page = ListingPage(fetch_deals, fetch_external)
    await page.load()
    page.state = ListingState.from_params(q, store, sort)

    return templates.TemplateResponse(
        request,
        "listing/index.html",
        {
            "title": "CupomHub",
            "offers": page.view(),
            "state": page.state,
            "stores": [ALL_STORES, *STORES],
            "featured_stores": ["Nike", "Adidas", "iShop", "Insider Store"],
            "year": datetime.now(DISPLAY_TZ).year,
        },
    )


@app.get("/admin", response_class=HTMLResponse)
async def admin_page(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Admin console for deals."""
    deals = await deal_store.list_deals(db)
    return templates.TemplateResponse(
        request,
        "admin/index.html",
        {"title": "Admin – Deals", "deals": deals},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": VERSION}
