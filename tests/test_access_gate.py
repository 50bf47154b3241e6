import pytest

from sq_portal.access_gate import GateDecision
from sq_portal.api_client import ApiStatusError, ApiTransportError
from sq_portal.session import RequiredRole


class CountingFetch:
    def __init__(self, result=None, error=None):
        self.calls = []
        self.result = result
        self.error = error

    async def __call__(self, token):
        self.calls.append(token)
        if self.error is not None:
            raise self.error
        return self.result


async def test_non_admin_is_denied_without_fetch(gate, user_token):
    fetch = CountingFetch(result={"body": "secret"})

    result = await gate.enter(user_token, RequiredRole.ADMIN, fetch=fetch)

    assert result.decision is GateDecision.DENIED
    assert result.resource is None
    assert result.token is None
    assert result.claims is None
    assert fetch.calls == []


async def test_anonymous_caller_is_denied_on_admin_view(gate):
    fetch = CountingFetch(result="resource")

    result = await gate.enter(None, RequiredRole.ADMIN, fetch=fetch)

    assert result.decision is GateDecision.DENIED
    assert fetch.calls == []


async def test_anonymous_caller_is_sent_to_sign_in(gate):
    result = await gate.enter("garbage", RequiredRole.ANY_AUTHENTICATED)

    assert result.decision is GateDecision.SIGN_IN
    assert not result.granted


async def test_admin_is_granted_and_fetch_runs_once_with_token(gate, admin_token):
    fetch = CountingFetch(result="announcement")

    result = await gate.enter(admin_token, RequiredRole.ADMIN, fetch=fetch)

    assert result.granted
    assert result.role == "admin"
    assert result.resource == "announcement"
    assert not result.fetch_failed
    assert fetch.calls == [admin_token]


@pytest.mark.parametrize(
    "error",
    [ApiStatusError(404, "not found"), ApiTransportError("connection refused"), ValueError("bad json")],
)
async def test_fetch_failure_degrades_to_empty_resource(gate, admin_token, error):
    fetch = CountingFetch(error=error)

    result = await gate.enter(admin_token, RequiredRole.ADMIN, fetch=fetch)

    assert result.granted
    assert result.resource is None
    assert result.fetch_failed


def test_check_grants_any_authenticated_user(gate, user_token):
    result = gate.check(user_token, RequiredRole.ANY_AUTHENTICATED)

    assert result.granted
    assert result.claims.subject_id == "user-123"
    assert result.token == user_token
