"""
Reporter agent: the script that runs inside the report content and posts
{reportHeight} to the parent frame on load and every AGENT_INTERVAL_MS.

The measurement policy is a closed set of strategies tried in order. The
same policy is mirrored here over a plain element tree so it can be checked
against synthetic layouts, and rendered into JavaScript for the browser.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

# Viewer element ids on the report server.
REPORT_CONTENT_ID = "oReportDiv"
VIEWER_TABLE_ID = "ReportViewerControl_fixedTable"
VISIBLE_CONTENT_ID = "VisibleReportContentReportViewerControl_ctl09"

AGENT_MARKER = "report-frame height agent"
DEFAULT_INTERVAL_MS = 1000

_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
_AGENT_JS = (_TEMPLATE_DIR / "agent.js").read_text(encoding="utf-8")
_MEASURE_JS = (_TEMPLATE_DIR / "measure.js").read_text(encoding="utf-8")

_BODY_CLOSE_RE = re.compile(r"</body\s*>", re.IGNORECASE)


@dataclass
class Element:
    """Minimal stand-in for a rendered DOM element."""
    id: str = ""
    offset_height: int = 0
    scroll_height: int = 0
    children: List["Element"] = field(default_factory=list)

    def walk(self) -> Iterator["Element"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def contains(self, other: "Element") -> bool:
        return any(node is other for node in self.walk())


@dataclass
class ContentLayout:
    body: Element
    root_scroll_height: int = 0
    root_offset_height: int = 0

    def find(self, element_id: str) -> Optional[Element]:
        for node in self.body.walk():
            if node.id == element_id:
                return node
        return None


class ReportDivStrategy:
    """Toolbar suppressed: the report div sits directly in the body."""
    name = "report_div"

    def probe(self, layout: ContentLayout) -> Optional[Element]:
        for child in layout.body.children:
            if child.id == REPORT_CONTENT_ID:
                return child
        return None

    def measure(self, layout: ContentLayout, found: Element) -> int:
        return max(found.scroll_height, found.offset_height)


class ViewerTableStrategy:
    """Toolbar present: toolbar/parameter rows plus the scrolling visible-content region."""
    name = "viewer_table"

    def probe(self, layout: ContentLayout) -> Optional[Tuple[Element, Element]]:
        table = layout.find(VIEWER_TABLE_ID)
        region = layout.find(VISIBLE_CONTENT_ID)
        if table is None or region is None:
            return None
        return table, region

    def measure(self, layout: ContentLayout, found: Tuple[Element, Element]) -> int:
        table, region = found
        chrome = sum(row.offset_height for row in table.children if not row.contains(region))
        return chrome + region.scroll_height


class DocumentStrategy:
    name = "document"

    def probe(self, layout: ContentLayout) -> ContentLayout:
        return layout

    def measure(self, layout: ContentLayout, found: ContentLayout) -> int:
        return max(
            layout.body.scroll_height,
            layout.body.offset_height,
            layout.root_scroll_height,
            layout.root_offset_height,
        )


STRATEGIES = (ReportDivStrategy(), ViewerTableStrategy(), DocumentStrategy())


def measure_layout(layout: ContentLayout) -> Tuple[str, int]:
    """Return (strategy name, height) for the first strategy whose probe matches."""
    for strategy in STRATEGIES:
        found = strategy.probe(layout)
        if found is not None:
            return strategy.name, int(round(strategy.measure(layout, found)))
    # DocumentStrategy always matches.
    raise AssertionError("no measurement strategy matched")


def agent_interval_ms() -> int:
    return max(100, int(os.getenv("AGENT_INTERVAL_MS", str(DEFAULT_INTERVAL_MS))))


def build_measure_function() -> str:
    """JavaScript function expression returning {strategy, height} for the current document."""
    return (
        _MEASURE_JS.replace("__REPORT_CONTENT_ID__", REPORT_CONTENT_ID)
        .replace("__VIEWER_TABLE_ID__", VIEWER_TABLE_ID)
        .replace("__VISIBLE_CONTENT_ID__", VISIBLE_CONTENT_ID)
        .strip()
    )


def build_agent_script(interval_ms: Optional[int] = None) -> str:
    interval = interval_ms if interval_ms is not None else agent_interval_ms()
    return (
        _AGENT_JS.replace("__AGENT_MARKER__", AGENT_MARKER)
        .replace("__MEASURE_FUNCTION__", build_measure_function())
        .replace("__INTERVAL_MS__", str(int(interval)))
    )


def inject_agent_script(page_html: str, script_src: Optional[str] = None, interval_ms: Optional[int] = None) -> str:
    """
    Insert the agent into a viewer page, before </body> when present.
    Pages already carrying the agent are returned unchanged.
    """
    if AGENT_MARKER in page_html:
        return page_html
    if script_src:
        tag = f'<script src="{script_src}" data-agent="{AGENT_MARKER}"></script>'
    else:
        tag = f"<script>\n{build_agent_script(interval_ms)}</script>"
    matches = list(_BODY_CLOSE_RE.finditer(page_html))
    if not matches:
        return page_html + "\n" + tag + "\n"
    pos = matches[-1].start()
    return page_html[:pos] + tag + "\n" + page_html[pos:]
