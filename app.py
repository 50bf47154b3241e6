from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from urllib.parse import quote
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

import logging

from sq_portal.access_gate import AccessGate
from sq_portal.api_client import TrackerApiClient
from sq_portal.config import load_portal_config
from sq_portal.mount_gradio_app import mount_gradio_app
from sq_portal.pages.announcements.app_announcement_edit import make_announcement_edit_app
from sq_portal.pages.upload.app_upload import PAGE_CSS as UPLOAD_PAGE_CSS, make_upload_app

logger = logging.getLogger(__name__)


def _install_proxy_headers(app: FastAPI) -> None:
    """Honor X-Forwarded-* so redirects keep the public scheme and host."""
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")


config = load_portal_config()
api_client = TrackerApiClient(config)
access_gate = AccessGate(config)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    await api_client.aclose()
    logger.info("Closed tracker API client")


app = FastAPI(lifespan=lifespan)
_install_proxy_headers(app)


@app.middleware("http")
async def redirect_announcement_edit_route(request: Request, call_next):
    parts = [part for part in (request.url.path or "/").split("/") if part]
    if len(parts) == 3 and parts[0] == "announcements" and parts[2] == "edit":
        target = f"/announcement-edit/?slug={quote(parts[1], safe='-')}"
        return RedirectResponse(url=target, status_code=307)
    return await call_next(request)


@app.get("/")
async def root_redirect() -> RedirectResponse:
    return RedirectResponse(url="/upload/")


# --- Protected pages
upload_app = make_upload_app(config, api_client, access_gate)
announcement_edit_app = make_announcement_edit_app(config, api_client, access_gate)

mount_gradio_app(app, upload_app, "/upload", config=config, css=UPLOAD_PAGE_CSS)
mount_gradio_app(app, announcement_edit_app, "/announcement-edit", config=config)
