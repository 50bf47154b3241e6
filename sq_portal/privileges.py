from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from sq_portal.session import ADMIN_ROLE, RequiredRole, SessionClaims


@dataclass(frozen=True)
class PageLink:
    key: str
    label: str
    path: str
    required_role: RequiredRole
    in_navigation: bool = True


NAVIGATION_ORDER: tuple[str, ...] = (
    "upload",
    "announcement-edit",
)

PAGE_REGISTRY: dict[str, PageLink] = {
    "upload": PageLink("upload", "Upload", "/upload/", RequiredRole.ANY_AUTHENTICATED),
    # Reached from an announcement's edit link, never listed in the sidebar.
    "announcement-edit": PageLink(
        "announcement-edit",
        "Edit announcement",
        "/announcement-edit/",
        RequiredRole.ADMIN,
        in_navigation=False,
    ),
}

PATH_TO_PAGE_KEY: dict[str, str] = {
    "/upload": "upload",
    "/announcement-edit": "announcement-edit",
}


def _normalize_route(route: str) -> str:
    route = route or "/"
    if not route.startswith("/"):
        route = f"/{route}"
    if route != "/" and route.endswith("/"):
        route = route.rstrip("/")
    return route


def page_key_for_route(route: str) -> Optional[str]:
    """
    Resolve a mount route (e.g., '/upload') to the corresponding page key.
    """
    return PATH_TO_PAGE_KEY.get(_normalize_route(route))


def required_role_for_route(route: str) -> Optional[RequiredRole]:
    key = page_key_for_route(route)
    if key is None:
        return None
    return PAGE_REGISTRY[key].required_role


def resolve_nav_links(claims: Optional[SessionClaims]) -> List[PageLink]:
    """
    Ordered sidebar links visible to the caller. Anonymous callers see none.
    """
    if claims is None:
        return []
    links: List[PageLink] = []
    for key in NAVIGATION_ORDER:
        link = PAGE_REGISTRY[key]
        if not link.in_navigation:
            continue
        if link.required_role is RequiredRole.ADMIN and claims.role != ADMIN_ROLE:
            continue
        links.append(link)
    return links
