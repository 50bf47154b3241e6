import httpx

from sq_portal.access_gate import PERMISSION_DENIED_MESSAGE
from sq_portal.api_client import TrackerApiClient
from sq_portal.pages.announcements.core_announcement_edit import load_edit_page, submit_edit_form

ANNOUNCEMENT = {"_id": "a1", "title": "Maintenance", "body": "Downtime at noon", "pinned": True}


class FakeBackend:
    def __init__(self, get_status=200, post_status=200, post_text="maintenance"):
        self.requests = []
        self.get_status = get_status
        self.post_status = post_status
        self.post_text = post_text

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            if self.get_status != 200:
                return httpx.Response(self.get_status, text="not found")
            return httpx.Response(200, json=ANNOUNCEMENT)
        return httpx.Response(self.post_status, text=self.post_text)


def _api(config, backend):
    return TrackerApiClient(config, transport=httpx.MockTransport(backend))


async def test_non_admin_sees_denial_and_nothing_is_fetched(config, gate, notifier, user_token):
    backend = FakeBackend()

    outputs = await load_edit_page(gate, _api(config, backend), notifier, "maintenance", user_token)

    denied, form, _notice, title, body, pinned, state = outputs
    assert denied["value"] == PERMISSION_DENIED_MESSAGE
    assert denied["visible"] is True
    assert form["visible"] is False
    assert title["value"] == "" and body["value"] == "" and pinned["value"] is False
    assert "Downtime at noon" not in repr(outputs)
    assert state is None
    assert backend.requests == []


async def test_anonymous_caller_sees_denial(config, gate, notifier):
    backend = FakeBackend()

    outputs = await load_edit_page(gate, _api(config, backend), notifier, "maintenance", None)

    assert outputs[0]["value"] == PERMISSION_DENIED_MESSAGE
    assert backend.requests == []


async def test_admin_gets_prefilled_form_and_can_update(config, gate, notifier, admin_token):
    backend = FakeBackend(post_text="maintenance")
    api = _api(config, backend)

    outputs = await load_edit_page(gate, api, notifier, "maintenance", admin_token)
    _denied, form, _notice, title, body, pinned, state = outputs

    assert form["visible"] is True
    assert title["value"] == "Maintenance"
    assert body["value"] == "Downtime at noon"
    assert pinned["value"] is True
    assert backend.requests[0].headers["authorization"] == f"Bearer {admin_token}"

    target = await submit_edit_form(api, state, "Maintenance", "Moved to 1pm", False)

    assert target == "/announcements/maintenance"
    assert notifier.successes == ["Announcement updated successfully"]
    assert notifier.errors == []
    assert backend.requests[-1].url.path == "/announcements/edit/a1"


async def test_failed_fetch_renders_empty_form_that_cannot_submit(config, gate, notifier, admin_token):
    backend = FakeBackend(get_status=404)
    api = _api(config, backend)

    outputs = await load_edit_page(gate, api, notifier, "missing", admin_token)
    _denied, form, notice, title, _body, _pinned, state = outputs

    assert form["visible"] is True
    assert notice["visible"] is True
    assert "missing" in notice["value"]
    assert title["value"] == ""

    target = await submit_edit_form(api, state, "Title", "Body", False)

    assert target == ""
    assert len(notifier.errors) == 1
    assert [request.method for request in backend.requests] == ["GET"]


async def test_update_rejection_keeps_user_on_form(config, gate, notifier, admin_token):
    backend = FakeBackend(post_status=400, post_text="title too long")
    api = _api(config, backend)
    state = (await load_edit_page(gate, api, notifier, "maintenance", admin_token))[-1]

    target = await submit_edit_form(api, state, "x" * 500, "Body", True)

    assert target == ""
    assert notifier.errors == ["Could not update announcement: title too long"]
    assert notifier.successes == []


async def test_missing_title_is_reported_without_request(config, gate, notifier, admin_token):
    backend = FakeBackend()
    api = _api(config, backend)
    state = (await load_edit_page(gate, api, notifier, "maintenance", admin_token))[-1]

    target = await submit_edit_form(api, state, "  ", "Body", False)

    assert target == ""
    assert notifier.errors == ["Could not update announcement: Title is required."]
    assert [request.method for request in backend.requests] == ["GET"]
