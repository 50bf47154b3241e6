"""
Per-view access decisions.

The gate verifies the caller's token, checks the role a view requires and, only when
the caller is allowed in, performs the single upstream fetch the view depends on.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import time
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from sq_portal.api_client import ApiStatusError, ApiTransportError
from sq_portal.config import PortalConfig
from sq_portal.session import RequiredRole, SessionClaims, authorize, resolve_session

logger = logging.getLogger(__name__)
timing_logger = logging.getLogger("uvicorn.error")

PERMISSION_DENIED_MESSAGE = "You do not have permission to do that."

T = TypeVar("T")
ResourceFetch = Callable[[str], Awaitable[T]]


class GateDecision(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    SIGN_IN = "sign-in"


@dataclass(frozen=True)
class GateResult(Generic[T]):
    decision: GateDecision
    claims: Optional[SessionClaims] = None
    token: Optional[str] = None
    resource: Optional[T] = None
    fetch_failed: bool = False

    @property
    def granted(self) -> bool:
        return self.decision is GateDecision.GRANTED

    @property
    def role(self) -> Optional[str]:
        return self.claims.role if self.claims else None


def _log_timing(event_name: str, start: float, **fields: object) -> None:
    elapsed_ms = (time.perf_counter() - start) * 1000.0
    field_text = " ".join(f"{key}={value}" for key, value in fields.items())
    timing_logger.info("access_gate.timing event=%s ms=%.2f %s", event_name, elapsed_ms, field_text)


class AccessGate:
    def __init__(self, config: PortalConfig) -> None:
        self._secret = config.jwt_secret

    def check(self, raw_token: Optional[str], required_role: RequiredRole) -> GateResult:
        claims = resolve_session(raw_token, self._secret)
        if authorize(claims, required_role):
            return GateResult(decision=GateDecision.GRANTED, claims=claims, token=raw_token)
        if claims is None and required_role is RequiredRole.ANY_AUTHENTICATED:
            return GateResult(decision=GateDecision.SIGN_IN)
        # Denials never carry the credential or claims further down.
        return GateResult(decision=GateDecision.DENIED)

    async def enter(
        self,
        raw_token: Optional[str],
        required_role: RequiredRole,
        fetch: Optional[ResourceFetch[T]] = None,
    ) -> GateResult[T]:
        start = time.perf_counter()
        result = self.check(raw_token, required_role)
        if not result.granted or fetch is None:
            _log_timing("enter", start, required=required_role.value, decision=result.decision.value)
            return result

        try:
            resource = await fetch(result.token or "")
        except ApiStatusError as exc:
            logger.warning("Protected resource fetch returned HTTP %s", exc.status_code)
            resource, failed = None, True
        except ApiTransportError as exc:
            logger.warning("Protected resource fetch failed: %s", exc)
            resource, failed = None, True
        except ValueError as exc:
            logger.warning("Protected resource payload could not be parsed: %s", exc)
            resource, failed = None, True
        else:
            failed = False

        _log_timing(
            "enter",
            start,
            required=required_role.value,
            decision=result.decision.value,
            fetch_failed=failed,
        )
        return GateResult(
            decision=GateDecision.GRANTED,
            claims=result.claims,
            token=result.token,
            resource=resource,
            fetch_failed=failed,
        )
