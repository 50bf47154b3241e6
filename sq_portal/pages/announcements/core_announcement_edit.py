from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

import gradio as gr

from sq_portal.access_gate import PERMISSION_DENIED_MESSAGE, AccessGate
from sq_portal.api_client import Announcement, TrackerApiClient
from sq_portal.drafts import AnnouncementDraft
from sq_portal.session import RequiredRole
from sq_portal.submission import ANNOUNCEMENT_UPDATE, Notifier, SubmissionController

logger = logging.getLogger(__name__)


@dataclass
class EditFormSession:
    """Per-visitor state of the edit form; lives in a ``gr.State`` and never reaches the browser."""

    slug: str
    announcement_id: str
    token: str
    controller: SubmissionController


def _denied_outputs():
    return (
        gr.update(value=PERMISSION_DENIED_MESSAGE, visible=True),
        gr.update(visible=False),
        gr.update(value="", visible=False),
        gr.update(value=""),
        gr.update(value=""),
        gr.update(value=False),
        None,
    )


async def load_edit_page(
    gate: AccessGate,
    api: TrackerApiClient,
    notifier: Notifier,
    slug: str,
    raw_token: Optional[str],
):
    """
    Gate the edit view and pre-fill the form.

    Returns updates for (denied message, form column, load notice, title, body,
    pinned, session state). Non-admins get the denial only: no fetch runs and no
    announcement field is populated.
    """
    slug = (slug or "").strip()

    async def _fetch(token: str) -> Announcement:
        return await api.get_announcement(slug, token)

    result = await gate.enter(
        raw_token,
        RequiredRole.ADMIN,
        fetch=_fetch if slug else None,
    )
    if not result.granted:
        logger.info("Announcement edit denied slug=%s decision=%s", slug, result.decision.value)
        return _denied_outputs()

    announcement = result.resource
    controller = SubmissionController(ANNOUNCEMENT_UPDATE, notifier)
    if announcement is None:
        notice = (
            f"Announcement `{slug}` could not be loaded." if slug else "No announcement was selected."
        )
        session = EditFormSession(slug=slug, announcement_id="", token=result.token or "", controller=controller)
        return (
            gr.update(value="", visible=False),
            gr.update(visible=True),
            gr.update(value=notice, visible=True),
            gr.update(value=""),
            gr.update(value=""),
            gr.update(value=False),
            session,
        )

    session = EditFormSession(
        slug=slug,
        announcement_id=announcement.id,
        token=result.token or "",
        controller=controller,
    )
    return (
        gr.update(value="", visible=False),
        gr.update(visible=True),
        gr.update(value="", visible=False),
        gr.update(value=announcement.title),
        gr.update(value=announcement.body),
        gr.update(value=announcement.pinned),
        session,
    )


async def submit_edit_form(
    api: TrackerApiClient,
    session: Optional[EditFormSession],
    title: str,
    body: str,
    pinned: bool,
) -> str:
    """Send the update; returns the page to navigate to, or "" to stay on the form."""
    if session is None:
        return ""

    draft = AnnouncementDraft(
        id=session.announcement_id,
        title=title or "",
        body=body or "",
        pinned=bool(pinned),
    )

    async def _send():
        payload = draft.to_update_payload()
        return await api.update_announcement(draft.id, payload, session.token)

    outcome = await session.controller.submit(_send)
    return outcome.redirect_to
