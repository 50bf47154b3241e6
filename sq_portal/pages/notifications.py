from __future__ import annotations

import logging

import gradio as gr

logger = logging.getLogger(__name__)

# Runs in the browser after a submit; an empty target means "stay on the form".
NAVIGATE_JS = """
(target) => {
  if (target) {
    window.location.assign(target);
  }
  return [];
}
""".strip()


class GradioNotifier:
    """Toast notifications for the Gradio event currently being processed."""

    def success(self, message: str) -> None:
        logger.info("notify.success %s", message)
        gr.Info(f"✅ {message}")

    def error(self, message: str) -> None:
        logger.info("notify.error %s", message)
        gr.Warning(f"❌ {message}")
