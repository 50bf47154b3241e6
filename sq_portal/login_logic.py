from typing import Optional

import logging
from urllib.parse import urlencode, quote, urlsplit, urlunsplit
from starlette.requests import Request
from starlette.responses import RedirectResponse

from sq_portal.config import PortalConfig

logger = logging.getLogger(__name__)
_DEFAULT_REDIRECT_PATH = "/upload/"


def add_logout_route(app, config: PortalConfig):
    state_flag = "_sq_logout_registered"
    if getattr(app.state, state_flag, False):
        return

    @app.get("/logout")
    async def logout(request: Request):
        response = RedirectResponse("/")
        response.delete_cookie(config.token_cookie)
        return response

    setattr(app.state, state_flag, True)


def sanitize_redirect_target(candidate: Optional[str], config: PortalConfig) -> Optional[str]:
    """
    Allow relative paths or URLs on the portal's own host; block protocol-relative / malformed URLs.
    """
    if not candidate:
        return None
    target = candidate.strip()
    if not target:
        return None
    if target.startswith("//"):
        return None
    if target.startswith("/"):
        return target

    parsed = urlsplit(target)
    if parsed.scheme not in {"https", "http"}:
        return None
    host = (parsed.hostname or "").lower()
    if not host:
        return None

    allowed_host = (urlsplit(config.base_url).hostname or "").lower()
    if not allowed_host or host != allowed_host:
        return None
    return urlunsplit(parsed)


def build_sign_in_url(config: PortalConfig, redirect_to: Optional[str]) -> str:
    target = sanitize_redirect_target(redirect_to, config) or _DEFAULT_REDIRECT_PATH
    query = urlencode({"redirect_to": target}, quote_via=quote, safe="/:")
    return f"{config.sign_in_path}?{query}"


def sign_in_redirect(request: Request, config: PortalConfig) -> RedirectResponse:
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    target = build_sign_in_url(config, path)
    logger.info("Redirecting unauthenticated request path=%s to sign-in", request.url.path)
    return RedirectResponse(url=target, status_code=307)
