from __future__ import annotations
import html
import logging
import time
from typing import Optional

from sq_portal.css.utils import load_css
from sq_portal.login_logic import build_sign_in_url
from sq_portal.config import PortalConfig
from sq_portal.privileges import page_key_for_route, resolve_nav_links
from sq_portal.session import SessionClaims

timing_logger = logging.getLogger("uvicorn.error")

SITE_TITLE = "SQ Tracker"


def _log_timing(event_name: str, start: float, **fields: object) -> None:
    elapsed_ms = (time.perf_counter() - start) * 1000.0
    if fields:
        field_text = " ".join(f"{key}={value}" for key, value in fields.items())
        timing_logger.info("header.timing event=%s ms=%.2f %s", event_name, elapsed_ms, field_text)
        return
    timing_logger.info("header.timing event=%s ms=%.2f", event_name, elapsed_ms)


def render_header(path: str, claims: Optional[SessionClaims], config: PortalConfig) -> str:
    total_start = time.perf_counter()
    css_block = f"<style>\n{load_css('header.css')}\n</style>"
    active_key = page_key_for_route(path or "")

    links = []
    for link in resolve_nav_links(claims):
        active_class = " is-active" if link.key == active_key else ""
        aria_current = ' aria-current="page"' if link.key == active_key else ""
        links.append(
            f'<a href="{html.escape(link.path)}" class="hdr-link{active_class}"{aria_current}>'
            f"{html.escape(link.label)}</a>"
        )

    if claims:
        role = html.escape(claims.role)
        account_html = (
            f'<span class="account-role">Signed in as {role}</span>'
            '<a href="/logout" class="menu-link">Sign out</a>'
        )
    else:
        sign_in = html.escape(build_sign_in_url(config, path))
        account_html = f'<a href="{sign_in}" class="menu-link">Sign in</a>'

    html_value = f"""{css_block}
<div class="sq-header">
  <a href="/" class="site-logo">{html.escape(SITE_TITLE)}</a>
  <nav aria-label="Main navigation">{''.join(links)}</nav>
  <div class="account">{account_html}</div>
</div>
"""
    _log_timing("render_header.total", total_start, path=path or "/", has_claims=bool(claims))
    return html_value
