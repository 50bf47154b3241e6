from __future__ import annotations

import logging

import gradio as gr

from sq_portal.access_gate import AccessGate
from sq_portal.api_client import TrackerApiClient
from sq_portal.config import PortalConfig
from sq_portal.css.utils import load_css
from sq_portal.page_timing import timed_page_load
from sq_portal.pages.header import render_header
from sq_portal.pages.notifications import NAVIGATE_JS, GradioNotifier
from sq_portal.pages.upload.core_upload import (
    DROP_HINT,
    change_category,
    change_source,
    drop_files,
    load_upload_page,
    submit_upload_form,
)
from sq_portal.session import resolve_session, token_from_request

logger = logging.getLogger(__name__)

PAGE_ROUTE = "/upload"

INFOBOX_TEXT = (
    "Note: if you have started seeding a torrent before uploading, you may need to "
    "refresh trackers in your torrent client once the upload is complete."
)

PAGE_CSS = load_css("upload_page.css")


def torrent_file_input() -> gr.File:
    """
    Drop zone for the torrent. Unfiltered: every drop, wrong type
    included, reaches `drop_files` so the ingestion state always follows the latest drop.
    """
    return gr.File(
        label="Torrent file",
        file_count="multiple",
        type="filepath",
        elem_id="upload-torrent-file",
    )


def make_upload_app(
    config: PortalConfig,
    api: TrackerApiClient,
    gate: AccessGate,
) -> gr.Blocks:
    notifier = GradioNotifier()

    def _header(request: gr.Request):
        claims = resolve_session(token_from_request(request, config.token_cookie), config.jwt_secret)
        return render_header(path=PAGE_ROUTE, claims=claims, config=config)

    def _load(request: gr.Request):
        return load_upload_page(config, gate, notifier, token_from_request(request, config.token_cookie))

    async def _submit(session, name, description, category, source, anonymous, tags):
        return await submit_upload_form(
            config, api, session, name, description, category, source, anonymous, tags
        )

    with gr.Blocks(title="Upload") as upload_app:
        hdr = gr.HTML()
        session_state = gr.State(None)
        nav_target = gr.Textbox(value="", visible=False)

        sign_in_md = gr.Markdown(visible=False, elem_id="upload-sign-in")

        with gr.Column(visible=False, elem_id="upload-form") as form_col:
            gr.Markdown("## Upload")
            announce_md = gr.Markdown(elem_id="upload-announce-url")

            torrent_files = torrent_file_input()
            file_status_md = gr.Markdown(DROP_HINT, elem_id="upload-file-status")
            drop_error_md = gr.Markdown(visible=False, elem_id="upload-drop-error")

            name_box = gr.Textbox(label="Name", elem_id="upload-name")
            category_dd = gr.Dropdown(label="Category", choices=[], visible=False, interactive=True)
            source_dd = gr.Dropdown(label="Source", choices=[], visible=False, interactive=True)
            description_box = gr.Textbox(
                label="Description",
                placeholder="Markdown supported",
                lines=10,
                elem_id="upload-description",
            )
            tags_box = gr.Textbox(label="Tags", placeholder="Separated by commas", elem_id="upload-tags")
            anonymous_box = gr.Checkbox(label="Anonymous upload", value=False, visible=False)
            upload_btn = gr.Button("Upload", variant="primary")
            gr.Markdown(INFOBOX_TEXT, elem_id="upload-infobox")

        upload_app.load(timed_page_load(PAGE_ROUTE, _header, label="header"), outputs=[hdr])
        upload_app.load(
            timed_page_load(PAGE_ROUTE, _load, label="load_upload_page"),
            outputs=[sign_in_md, form_col, announce_md, category_dd, source_dd, anonymous_box, session_state],
        )

        category_dd.change(
            timed_page_load(PAGE_ROUTE, change_category, label="change_category"),
            inputs=[session_state, category_dd],
            outputs=[source_dd],
            show_progress="hidden",
        )
        source_dd.change(
            timed_page_load(PAGE_ROUTE, change_source, label="change_source"),
            inputs=[session_state, source_dd],
            outputs=None,
            show_progress="hidden",
        )
        torrent_files.change(
            timed_page_load(PAGE_ROUTE, drop_files, label="drop_files"),
            inputs=[session_state, torrent_files],
            outputs=[file_status_md, drop_error_md],
            show_progress="minimal",
        )

        upload_btn.click(
            timed_page_load(PAGE_ROUTE, _submit, label="submit_upload_form"),
            inputs=[
                session_state,
                name_box,
                description_box,
                category_dd,
                source_dd,
                anonymous_box,
                tags_box,
            ],
            outputs=[nav_target],
            show_progress="minimal",
        ).then(None, inputs=[nav_target], outputs=None, js=NAVIGATE_JS)

    return upload_app
