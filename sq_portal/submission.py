"""
Submission controller shared by the announcement edit and torrent upload forms.

One controller lives per form instance. Its busy flag is set before the request is
dispatched and cleared in every branch, so overlapping submits on the same form never
reach the network twice. Each accepted submit ends in exactly one notification.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Awaitable, Callable, Protocol
from urllib.parse import quote

from sq_portal.api_client import ApiResponse, ApiTransportError

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class SubmissionStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    IGNORED = "ignored"


@dataclass(frozen=True)
class SubmissionOutcome:
    status: SubmissionStatus
    identifier: str = ""
    redirect_to: str = ""
    reason: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status is SubmissionStatus.SUCCEEDED


@dataclass(frozen=True)
class SubmissionAction:
    failure_prefix: str
    success_message: str
    view_path: str

    def view_for(self, identifier: str) -> str:
        return self.view_path.format(identifier=quote(identifier, safe=""))


ANNOUNCEMENT_UPDATE = SubmissionAction(
    failure_prefix="Could not update announcement",
    success_message="Announcement updated successfully",
    view_path="/announcements/{identifier}",
)

TORRENT_UPLOAD = SubmissionAction(
    failure_prefix="Could not upload file",
    success_message="Torrent uploaded successfully",
    view_path="/torrent/{identifier}",
)

SendRequest = Callable[[], Awaitable[ApiResponse]]


class SubmissionController:
    def __init__(self, action: SubmissionAction, notifier: Notifier) -> None:
        self.action = action
        self.notifier = notifier
        self.busy = False

    def _fail(self, reason: str) -> SubmissionOutcome:
        self.notifier.error(f"{self.action.failure_prefix}: {reason}")
        return SubmissionOutcome(status=SubmissionStatus.FAILED, reason=reason)

    def _interpret(self, response: ApiResponse) -> SubmissionOutcome:
        if not response.ok:
            reason = response.text.strip() or f"HTTP {response.status_code}"
            return self._fail(reason)

        identifier = response.text.strip()
        if not identifier:
            return self._fail("the server did not return an identifier")
        self.notifier.success(self.action.success_message)
        return SubmissionOutcome(
            status=SubmissionStatus.SUCCEEDED,
            identifier=identifier,
            redirect_to=self.action.view_for(identifier),
        )

    async def submit(self, send: SendRequest) -> SubmissionOutcome:
        """
        Run one submission. ``send`` builds the payload and performs the network call;
        a ``ValueError`` raised while building is reported like a rejected request.
        """
        if self.busy:
            logger.info("Ignoring submit while a previous one is in flight: %s", self.action.failure_prefix)
            return SubmissionOutcome(status=SubmissionStatus.IGNORED)

        self.busy = True
        try:
            try:
                response = await send()
            except ValueError as exc:
                return self._fail(str(exc))
            except ApiTransportError as exc:
                logger.warning("%s: transport error %s", self.action.failure_prefix, exc)
                return self._fail(str(exc))
            except Exception as exc:
                logger.exception("%s: unexpected error", self.action.failure_prefix)
                return self._fail(str(exc) or exc.__class__.__name__)
            return self._interpret(response)
        finally:
            self.busy = False
