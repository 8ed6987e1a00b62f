"""
Build the host page HTML for a mounted frame.
The iframe is keyed by generation: a new generation means a full reload.
"""
from __future__ import annotations

import html
import json
import os
from pathlib import Path

_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
_HOST_PAGE_HTML = (_TEMPLATE_DIR / "host_page.html").read_text(encoding="utf-8")
_HOST_FRAME_HTML = (_TEMPLATE_DIR / "host_frame.html").read_text(encoding="utf-8")
_HOST_SYNC_JS = (_TEMPLATE_DIR / "host_sync.js").read_text(encoding="utf-8")

PLACEHOLDER_TEXT = "Please configure the Report URL in the viewer settings."
PAGE_TITLE = "SSRS Report Viewer"


def _escape(s: str) -> str:
    return html.escape(str(s), quote=True)


def _js_string(s: str) -> str:
    # json.dumps gives a quoted JS literal; strip quotes and guard </script>.
    return json.dumps(str(s))[1:-1].replace("</", "<\\/")


def poll_interval_ms() -> int:
    return max(250, int(os.getenv("HOST_POLL_MS", "2000")))


def build_placeholder_html() -> str:
    return f'<div class="report-viewer placeholder"><p>{_escape(PLACEHOLDER_TEXT)}</p></div>'


def build_host_page_html(
    frame_id: str,
    generation: int,
    report_url: str,
    display_height: int,
    api_base: str = "/api/v1",
) -> str:
    """
    Full host page: placeholder when no address is configured, else the frame.
    Both carry the sync script, which polls the frame state and reloads on a new generation.
    """
    if not report_url:
        body_html = build_placeholder_html()
    else:
        body_html = (
            _HOST_FRAME_HTML.replace("__FRAME_ID__", _escape(frame_id))
            .replace("__GENERATION__", str(int(generation)))
            .replace("__REPORT_URL__", _escape(report_url))
            .replace("__DISPLAY_HEIGHT__", str(int(display_height)))
        )
    body_html += "\n<script>\n" + build_sync_script(frame_id, generation, api_base) + "</script>"
    return _HOST_PAGE_HTML.replace("__TITLE__", _escape(PAGE_TITLE)).replace("__BODY_HTML__", body_html)


def build_sync_script(frame_id: str, generation: int, api_base: str = "/api/v1") -> str:
    return (
        _HOST_SYNC_JS.replace("__FRAME_ID_JS__", _js_string(frame_id))
        .replace("__GENERATION__", str(int(generation)))
        .replace("__API_BASE__", _js_string(api_base.rstrip("/")))
        .replace("__POLL_MS__", str(poll_interval_ms()))
    )
