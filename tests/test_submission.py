import asyncio

from sq_portal.api_client import ApiResponse, ApiTransportError
from sq_portal.submission import (
    ANNOUNCEMENT_UPDATE,
    TORRENT_UPLOAD,
    SubmissionController,
    SubmissionStatus,
)


async def test_success_redirects_to_view_and_notifies_once(notifier):
    controller = SubmissionController(ANNOUNCEMENT_UPDATE, notifier)

    async def send():
        return ApiResponse(200, "abc123")

    outcome = await controller.submit(send)

    assert outcome.status is SubmissionStatus.SUCCEEDED
    assert outcome.redirect_to == "/announcements/abc123"
    assert notifier.successes == ["Announcement updated successfully"]
    assert notifier.errors == []
    assert not controller.busy


async def test_rejection_surfaces_server_body(notifier):
    controller = SubmissionController(TORRENT_UPLOAD, notifier)

    async def send():
        return ApiResponse(403, "forbidden")

    outcome = await controller.submit(send)

    assert outcome.status is SubmissionStatus.FAILED
    assert outcome.redirect_to == ""
    assert notifier.errors == ["Could not upload file: forbidden"]
    assert notifier.successes == []
    assert not controller.busy


async def test_rejection_with_empty_body_reports_status(notifier):
    controller = SubmissionController(TORRENT_UPLOAD, notifier)

    async def send():
        return ApiResponse(500, "")

    outcome = await controller.submit(send)

    assert outcome.reason == "HTTP 500"


async def test_ok_without_identifier_is_an_error(notifier):
    controller = SubmissionController(TORRENT_UPLOAD, notifier)

    async def send():
        return ApiResponse(200, "   ")

    outcome = await controller.submit(send)

    assert outcome.status is SubmissionStatus.FAILED
    assert notifier.count == 1
    assert len(notifier.errors) == 1


async def test_transport_error_clears_busy_flag(notifier):
    controller = SubmissionController(ANNOUNCEMENT_UPDATE, notifier)

    async def send():
        raise ApiTransportError("connection refused")

    outcome = await controller.submit(send)

    assert outcome.status is SubmissionStatus.FAILED
    assert notifier.errors == ["Could not update announcement: connection refused"]
    assert not controller.busy


async def test_validation_error_is_reported_like_a_rejection(notifier):
    controller = SubmissionController(ANNOUNCEMENT_UPDATE, notifier)

    async def send():
        raise ValueError("Title is required.")

    outcome = await controller.submit(send)

    assert outcome.reason == "Title is required."
    assert notifier.count == 1


async def test_unexpected_error_still_notifies_once(notifier):
    controller = SubmissionController(ANNOUNCEMENT_UPDATE, notifier)

    async def send():
        raise KeyError("boom")

    outcome = await controller.submit(send)

    assert outcome.status is SubmissionStatus.FAILED
    assert notifier.count == 1
    assert not controller.busy


async def test_second_submit_while_in_flight_is_ignored(notifier):
    controller = SubmissionController(TORRENT_UPLOAD, notifier)
    release = asyncio.Event()
    started = asyncio.Event()
    calls = []

    async def send():
        calls.append("sent")
        started.set()
        await release.wait()
        return ApiResponse(200, "t-1")

    first = asyncio.create_task(controller.submit(send))
    await started.wait()
    assert controller.busy

    second = await controller.submit(send)
    release.set()
    first_outcome = await first

    assert second.status is SubmissionStatus.IGNORED
    assert first_outcome.redirect_to == "/torrent/t-1"
    assert calls == ["sent"]
    assert notifier.count == 1


def test_view_path_quotes_identifier():
    assert TORRENT_UPLOAD.view_for("a/b c") == "/torrent/a%2Fb%20c"
