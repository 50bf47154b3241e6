from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, Mapping, Optional

import jwt
from starlette.requests import Request as StarletteRequest

logger = logging.getLogger(__name__)

JWT_ALGORITHMS = ["HS256"]
ADMIN_ROLE = "admin"
USER_ROLE = "user"


class RequiredRole(str, Enum):
    ADMIN = "admin"
    ANY_AUTHENTICATED = "any-authenticated"


@dataclass(frozen=True)
class SessionClaims:
    role: str
    subject_id: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def _claim_text(payload: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = payload.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def resolve_session(raw_token: Optional[str], secret: str) -> Optional[SessionClaims]:
    """
    Verify a signed session token and extract its claims.

    Fails closed: a missing, malformed, expired or wrongly signed token, or one
    without a role and subject, yields ``None`` instead of raising.
    """
    token = (raw_token or "").strip()
    if not token or not secret:
        return None
    try:
        payload = jwt.decode(token, secret, algorithms=JWT_ALGORITHMS)
    except jwt.ExpiredSignatureError:
        logger.debug("Rejected expired session token")
        return None
    except jwt.InvalidTokenError as exc:
        logger.debug("Rejected session token: %s", exc)
        return None

    if not isinstance(payload, Mapping):
        return None
    role = _claim_text(payload, "role").lower()
    subject_id = _claim_text(payload, "id", "sub", "subjectId")
    if not role or not subject_id:
        logger.warning("Session token verified but is missing role or subject claims")
        return None
    return SessionClaims(role=role, subject_id=subject_id)


def authorize(claims: Optional[SessionClaims], required_role: RequiredRole) -> bool:
    if claims is None:
        return False
    if required_role is RequiredRole.ADMIN:
        return claims.is_admin
    return True


def _underlying_request(request: Any) -> Any:
    # gr.Request wraps the Starlette request; unwrap so cookies and headers resolve the same way.
    if request is None:
        return None
    if isinstance(request, StarletteRequest):
        return request
    inner = getattr(request, "request", None)
    if inner is not None:
        return inner
    return request


def token_from_request(request: Any, cookie_name: str) -> Optional[str]:
    """
    Read the raw session token from the cookie the sign-in flow sets, falling back
    to an ``Authorization: Bearer`` header.
    """
    source = _underlying_request(request)
    if source is None:
        return None

    cookies = getattr(source, "cookies", None) or {}
    try:
        token = cookies.get(cookie_name)
    except AttributeError:
        token = None
    if token:
        return str(token).strip() or None

    headers = getattr(source, "headers", None) or {}
    try:
        authorization = headers.get("authorization") or ""
    except AttributeError:
        authorization = ""
    scheme, _, credentials = str(authorization).partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None
