# sq_portal/mount_gradio_app.py
import logging

from starlette.requests import Request
import gradio as gr

from sq_portal.config import PortalConfig
from sq_portal.login_logic import add_logout_route, sign_in_redirect
from sq_portal.privileges import required_role_for_route
from sq_portal.session import RequiredRole, resolve_session, token_from_request

logger = logging.getLogger(__name__)

# Gradio internals requested by an already-rendered page; each event handler
# re-checks the session itself.
GRADIO_PUBLIC_SUFFIXES = (
    "/gradio_api", "/file", "/assets", "/static", "/config",
    "/queue", "/upload", "/theme.css", "/favicon.ico",
)


def add_middleware_redirect(app, app_route: str, config: PortalConfig):
    """
    Send unauthenticated visitors of pages that need any signed-in user to the sign-in page.
    Admin-only pages are not redirected here: they render their own permission-denied view.
    """
    route_no_slash = app_route or "/"
    if not route_no_slash.startswith("/"):
        route_no_slash = f"/{route_no_slash}"
    route_no_slash = route_no_slash.rstrip("/") or "/"
    route_prefix = f"{route_no_slash}/"
    required_role = required_role_for_route(route_no_slash)

    if required_role is not RequiredRole.ANY_AUTHENTICATED:
        return

    def _is_page_request(path: str) -> bool:
        normalized_path = path or "/"
        if normalized_path == route_no_slash or normalized_path == route_prefix:
            return True
        if not normalized_path.startswith(route_prefix):
            return False
        remainder = normalized_path[len(route_no_slash):]
        return not any(remainder.startswith(p) for p in GRADIO_PUBLIC_SUFFIXES)

    @app.middleware("http")
    async def check_authentication(request: Request, call_next):
        if not _is_page_request(request.url.path):
            return await call_next(request)
        claims = resolve_session(token_from_request(request, config.token_cookie), config.jwt_secret)
        if claims is None:
            return sign_in_redirect(request, config)
        return await call_next(request)


def mount_gradio_app(app, blocks: gr.Blocks, path: str, *, config: PortalConfig, **kwargs):
    add_middleware_redirect(app, path, config)
    add_logout_route(app, config)
    return gr.mount_gradio_app(app, blocks, path, **kwargs)
