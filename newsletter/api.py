"""HTTP surface: the run trigger and the open/click tracking endpoint."""
from __future__ import annotations

import logging
from typing import Annotated, Callable, Iterable, Optional
from urllib.parse import urlsplit

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from .config import FALLBACK_URL, Settings
from .service import NewsletterService, build_service, build_store
from .storage import NewsletterStore, StoreError

LOGGER = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}
NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}
# 1x1 transparent GIF
TRACKING_PIXEL = bytes(
    [
        0x47, 0x49, 0x46, 0x38, 0x39, 0x61, 0x01, 0x00, 0x01, 0x00,
        0x80, 0x00, 0x00, 0xFF, 0xFF, 0xFF, 0x00, 0x00, 0x00, 0x21,
        0xF9, 0x04, 0x01, 0x00, 0x00, 0x00, 0x00, 0x2C, 0x00, 0x00,
        0x00, 0x00, 0x01, 0x00, 0x01, 0x00, 0x00, 0x02, 0x02, 0x44,
        0x01, 0x00, 0x3B,
    ]
)
TRIGGER_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def is_allowed_redirect(url: Optional[str], domains: Iterable[str]) -> bool:
    """Only https links to an allowlisted host (or one of its subdomains)."""
    if not url:
        return False
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if parts.scheme != "https" or not parts.hostname:
        return False
    host = parts.hostname.lower()
    for domain in domains:
        domain = domain.lower()
        if host == domain or host.endswith(f".{domain}"):
            return True
    LOGGER.info("Rejected redirect to %s: host not allowed", host)
    return False


def create_app(
    settings: Optional[Settings] = None,
    service_factory: Optional[Callable[[], NewsletterService]] = None,
    store_factory: Optional[Callable[[], NewsletterStore]] = None,
    dry_run: bool = False,
) -> FastAPI:
    settings = settings or Settings.from_env()
    make_service = service_factory or (lambda: build_service(settings, dry_run=dry_run))
    make_store = store_factory or (lambda: build_store(settings))
    redirect_domains = settings.redirect_domains()

    app = FastAPI(title="Weekly newsletter")

    @app.api_route("/", methods=TRIGGER_METHODS)
    def trigger(request: Request) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        try:
            summary = make_service().run_once()
        except Exception as exc:  # noqa: BLE001 - reported to the caller as a 500
            LOGGER.exception("Error in weekly newsletter run: %s", exc)
            return JSONResponse({"error": str(exc)}, status_code=500, headers=CORS_HEADERS)
        return JSONResponse(summary.to_payload(), status_code=200, headers=CORS_HEADERS)

    @app.options("/email-tracking")
    def tracking_preflight() -> Response:
        return Response(status_code=200, headers=CORS_HEADERS)

    @app.get("/email-tracking")
    def email_tracking(
        kind: Annotated[str, Query(alias="type")],
        log_id: Annotated[Optional[str], Query(alias="logId")] = None,
        url: Annotated[Optional[str], Query()] = None,
    ) -> Response:
        if kind == "open":
            if not log_id:
                LOGGER.warning("Open tracking request without a log id")
            else:
                try:
                    make_store().record_open(log_id)
                except StoreError as exc:
                    LOGGER.error("Error recording open for %s: %s", log_id, exc)
            return Response(
                content=TRACKING_PIXEL,
                media_type="image/gif",
                headers={**NO_CACHE_HEADERS, **CORS_HEADERS},
            )

        if kind == "click":
            if not log_id:
                return Response("Missing ID", status_code=400, headers=CORS_HEADERS)
            try:
                make_store().record_click(log_id)
            except StoreError as exc:
                LOGGER.error("Error recording click for %s: %s", log_id, exc)
            if not url:
                return Response("Click recorded", status_code=200, headers=CORS_HEADERS)
            target = url if is_allowed_redirect(url, redirect_domains) else FALLBACK_URL
            return RedirectResponse(target, status_code=302, headers=CORS_HEADERS)

        return Response("Invalid tracking type", status_code=400, headers=CORS_HEADERS)

    return app
