from __future__ import annotations

import logging

import gradio as gr

from sq_portal.access_gate import AccessGate
from sq_portal.api_client import TrackerApiClient
from sq_portal.config import PortalConfig
from sq_portal.page_timing import timed_page_load
from sq_portal.pages.announcements.core_announcement_edit import load_edit_page, submit_edit_form
from sq_portal.pages.header import render_header
from sq_portal.pages.notifications import NAVIGATE_JS, GradioNotifier
from sq_portal.session import resolve_session, token_from_request

logger = logging.getLogger(__name__)

PAGE_ROUTE = "/announcement-edit"


def make_announcement_edit_app(
    config: PortalConfig,
    api: TrackerApiClient,
    gate: AccessGate,
) -> gr.Blocks:
    notifier = GradioNotifier()

    def _header(request: gr.Request):
        claims = resolve_session(token_from_request(request, config.token_cookie), config.jwt_secret)
        return render_header(path=PAGE_ROUTE, claims=claims, config=config)

    async def _load(request: gr.Request):
        slug = str(request.query_params.get("slug", "")).strip()
        raw_token = token_from_request(request, config.token_cookie)
        return await load_edit_page(gate, api, notifier, slug, raw_token)

    async def _submit(session, title: str, body: str, pinned: bool):
        return await submit_edit_form(api, session, title, body, pinned)

    with gr.Blocks(title="Edit announcement") as edit_app:
        hdr = gr.HTML()
        session_state = gr.State(None)
        nav_target = gr.Textbox(value="", visible=False)

        denied_md = gr.Markdown(visible=False, elem_id="announcement-edit-denied")

        with gr.Column(visible=False, elem_id="announcement-edit-form") as form_col:
            gr.Markdown("## Edit announcement")
            load_notice = gr.Markdown(visible=False, elem_id="announcement-edit-notice")
            title_box = gr.Textbox(label="Title", elem_id="announcement-edit-title")
            body_box = gr.Textbox(
                label="Body",
                placeholder="Markdown supported",
                lines=10,
                elem_id="announcement-edit-body",
            )
            pinned_box = gr.Checkbox(label="Pin this announcement?", value=False)
            update_btn = gr.Button("Update announcement", variant="primary")

        edit_app.load(timed_page_load(PAGE_ROUTE, _header, label="header"), outputs=[hdr])
        edit_app.load(
            timed_page_load(PAGE_ROUTE, _load, label="load_edit_page"),
            outputs=[denied_md, form_col, load_notice, title_box, body_box, pinned_box, session_state],
        )

        update_btn.click(
            timed_page_load(PAGE_ROUTE, _submit, label="submit_edit_form"),
            inputs=[session_state, title_box, body_box, pinned_box],
            outputs=[nav_target],
            show_progress="minimal",
        ).then(None, inputs=[nav_target], outputs=None, js=NAVIGATE_JS)

    return edit_app
