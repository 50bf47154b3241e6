from __future__ import annotations

from dataclasses import dataclass
import html
import logging
from typing import Any, Iterable, List, Optional

import gradio as gr

from sq_portal.access_gate import AccessGate, GateDecision
from sq_portal.api_client import TrackerApiClient
from sq_portal.catalog import CategorySelector
from sq_portal.config import PortalConfig
from sq_portal.drafts import UploadDraft
from sq_portal.ingestion import DroppedFile, FileIngestion, IngestionSnapshot, IngestionStatus
from sq_portal.login_logic import build_sign_in_url
from sq_portal.session import RequiredRole
from sq_portal.submission import TORRENT_UPLOAD, Notifier, SubmissionController

logger = logging.getLogger(__name__)

UPLOAD_ROUTE = "/upload/"
DROP_HINT = "Drag and drop .torrent file here, or click to select"


@dataclass
class UploadFormSession:
    """Per-visitor upload form state; lives in a ``gr.State`` and never reaches the browser."""

    token: str
    subject_id: str
    selector: CategorySelector
    ingestion: FileIngestion
    controller: SubmissionController


def _as_list(files: Any) -> List[Any]:
    if files is None:
        return []
    if isinstance(files, (list, tuple)):
        return [item for item in files if item is not None]
    return [files]


def render_file_status(snapshot: IngestionSnapshot):
    """Updates for (file status, inline drop error)."""
    if snapshot.status is IngestionStatus.READY and snapshot.encoded is not None:
        name = html.escape(snapshot.encoded.original_name)
        return gr.update(value=f"✅ {name}"), gr.update(value="", visible=False)
    if snapshot.status is IngestionStatus.READING:
        return gr.update(value="Reading file..."), gr.update(value="", visible=False)
    if snapshot.status is IngestionStatus.FAILED:
        return (
            gr.update(value=DROP_HINT),
            gr.update(value=f"Could not upload .torrent: {snapshot.error}", visible=True),
        )
    return gr.update(value=DROP_HINT), gr.update(value="", visible=False)


def _category_updates(selector: CategorySelector):
    category_update = gr.update(
        choices=selector.category_choices(),
        value=selector.selected_category or None,
        visible=selector.enabled,
    )
    return category_update, _source_update(selector)


def _source_update(selector: CategorySelector):
    return gr.update(
        choices=selector.source_choices(),
        value=selector.selected_source or None,
        visible=bool(selector.selected_sources),
    )


def _hidden_page(notice: str):
    return (
        gr.update(value=notice, visible=True),
        gr.update(visible=False),
        gr.update(value=""),
        gr.update(choices=[], value=None, visible=False),
        gr.update(choices=[], value=None, visible=False),
        gr.update(visible=False),
        None,
    )


def load_upload_page(
    config: PortalConfig,
    gate: AccessGate,
    notifier: Notifier,
    raw_token: Optional[str],
):
    """
    Returns updates for (sign-in notice, form column, announce URL, category,
    source, anonymous checkbox, session state).
    """
    result = gate.check(raw_token, RequiredRole.ANY_AUTHENTICATED)
    if result.decision is GateDecision.SIGN_IN or not result.granted or result.claims is None:
        sign_in = build_sign_in_url(config, UPLOAD_ROUTE)
        return _hidden_page(f"You must [sign in]({sign_in}) to upload.")

    selector = CategorySelector(config.categories)
    selector.initialize()
    session = UploadFormSession(
        token=result.token or "",
        subject_id=result.claims.subject_id,
        selector=selector,
        ingestion=FileIngestion(max_bytes=config.max_torrent_bytes),
        controller=SubmissionController(TORRENT_UPLOAD, notifier),
    )
    announce_url = html.escape(config.announce_url(result.claims.subject_id))
    announce_md = (
        f"Announce URL must be set to <code>{announce_url}</code> or upload will be rejected"
    )
    category_update, source_update = _category_updates(selector)
    return (
        gr.update(value="", visible=False),
        gr.update(visible=True),
        gr.update(value=announce_md),
        category_update,
        source_update,
        gr.update(visible=config.allow_anonymous_upload, value=False),
        session,
    )


def change_category(session: Optional[UploadFormSession], category_slug: Optional[str]):
    if session is None:
        return gr.update(choices=[], value=None, visible=False)
    session.selector.on_category_change(category_slug or "")
    return _source_update(session.selector)


def change_source(session: Optional[UploadFormSession], source_slug: Optional[str]) -> None:
    if session is None or not source_slug:
        return
    try:
        session.selector.on_source_change(source_slug)
    except ValueError as exc:
        logger.info("Ignoring stale source selection: %s", exc)


async def drop_files(session: Optional[UploadFormSession], files: Any):
    if session is None:
        return render_file_status(IngestionSnapshot(status=IngestionStatus.EMPTY, generation=0))
    uploads = _as_list(files)
    if not uploads:
        session.ingestion.reset()
        return render_file_status(session.ingestion.snapshot())
    try:
        dropped: Iterable[DroppedFile] = [DroppedFile.from_upload(item) for item in uploads]
    except ValueError as exc:
        session.ingestion.reject(str(exc))
        return render_file_status(session.ingestion.snapshot())
    snapshot = await session.ingestion.on_files_dropped(dropped)
    return render_file_status(snapshot)


async def submit_upload_form(
    config: PortalConfig,
    api: TrackerApiClient,
    session: Optional[UploadFormSession],
    name: str,
    description: str,
    category_slug: Optional[str],
    source_slug: Optional[str],
    anonymous: bool,
    tags: str,
) -> str:
    """Send the upload; returns the page to navigate to, or "" to stay on the form."""
    if session is None:
        return ""

    async def _send():
        ingestion = session.ingestion
        if ingestion.status is IngestionStatus.READING:
            raise ValueError("The .torrent file is still being read.")
        if ingestion.status is not IngestionStatus.READY:
            raise ValueError("Choose a .torrent file to upload.")
        selector = session.selector
        category = (category_slug or None) if selector.enabled else None
        source = (source_slug or None) if selector.enabled else None
        selector.validate(category, source)
        draft = UploadDraft(
            name=name or "",
            description=description or "",
            category_slug=category,
            source_slug=source,
            anonymous=bool(anonymous) and config.allow_anonymous_upload,
            tags=tags or "",
            file_encoded=ingestion.encoded,
        )
        return await api.upload_torrent(draft.to_upload_payload(), session.token)

    outcome = await session.controller.submit(_send)
    return outcome.redirect_to
