from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, quote, quote_plus, unquote, urlencode, urlsplit

logger = logging.getLogger(__name__)

# Report-server URL access protocol.
EMBED_KEY = "rs:Embed"
TOOLBAR_KEY = "rc:Toolbar"
STYLESHEET_KEY = "rc:stylesheet"
PARAMETERS_KEY = "rc:Parameters"
ZOOM_KEY = "rc:Zoom"

HIDE_TOOLBAR_STYLESHEET = "hideToolBar"
TOOLBAR_MODES = ("stylesheet", "parameter")

_LEGACY_VIEWER_RE = re.compile(
    r"^(?P<base>.+?)/ReportServer/Pages/ReportViewer\.aspx\?(?P<rest>.*)$",
    re.IGNORECASE | re.DOTALL,
)
_ENCODED_SEPARATOR = "%2f"
# encodeURIComponent leaves these unescaped as well.
_SEGMENT_SAFE = "!*'()"


def default_toolbar_mode() -> str:
    mode = (os.environ.get("TOOLBAR_MODE") or "stylesheet").strip().lower()
    return mode if mode in TOOLBAR_MODES else "stylesheet"


@dataclass(frozen=True)
class ComposeOptions:
    """
    Display options injected into the report address.

    toolbar_mode selects how a hidden toolbar is requested:
    - "stylesheet": rc:stylesheet=hideToolBar (keeps the full viewer page rendering)
    - "parameter": rc:Toolbar=false (server switches to the bare rendering mode)
    """

    show_toolbar: bool = False
    show_parameters: bool = False
    zoom: str = ""
    toolbar_mode: str = "stylesheet"


def parse_custom_parameters(text: Optional[str]) -> Tuple[Dict[str, str], bool]:
    """
    Parse the operator's JSON parameter text into a flat string map.

    Returns (params, valid). Blank text is valid and empty. Malformed text,
    or JSON that is not an object, is logged and yields no parameters.
    """
    if not text or not text.strip():
        return {}, True
    try:
        parsed = json.loads(text)
    except ValueError as e:
        logger.warning("Invalid report parameters JSON: %s", e)
        return {}, False
    if not isinstance(parsed, dict):
        logger.warning("Report parameters JSON must be an object, got %s", type(parsed).__name__)
        return {}, False
    return {str(k): _param_value(v) for k, v in parsed.items()}, True


def _param_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def normalize_legacy_address(raw_url: str) -> str:
    """Rewrite the legacy ReportViewer.aspx page address to the /reports/report form."""
    m = _LEGACY_VIEWER_RE.match(raw_url)
    if not m:
        return raw_url
    return f"{m.group('base')}/reports/report?{m.group('rest')}"


def _is_report_path(token: str) -> bool:
    return token.startswith("/") or token[:3].lower() == _ENCODED_SEPARATOR


def _split_report_path(query: str) -> Tuple[str, str]:
    """Split the bare leading report-path token off the query. Returns (report_path, remaining_query)."""
    first = query.split("&", 1)[0]
    if not first or not _is_report_path(first):
        return "", query
    remaining = query[len(first):]
    if remaining.startswith("&"):
        remaining = remaining[1:]
    # A previously composed address carries the path already escaped.
    return unquote(first), remaining


def encode_report_path(report_path: str) -> str:
    """Percent-encode each path segment and join with an escaped separator."""
    return _ENCODED_SEPARATOR.join(
        quote(segment, safe=_SEGMENT_SAFE) if segment else "" for segment in report_path.split("/")
    )


def _parse_query(query: str) -> Dict[str, str]:
    params: Dict[str, str] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        params[key] = value
    return params


def _validate_base(base: str) -> None:
    parts = urlsplit(base)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"not an absolute URL: {base!r}")
    parts.port  # raises ValueError on an invalid port


def control_parameters(options: ComposeOptions) -> List[Tuple[str, str]]:
    """Control keys and values for the options, in the order they are appended."""
    pairs = [(EMBED_KEY, "true")]
    if not options.show_toolbar:
        if options.toolbar_mode == "parameter":
            pairs.append((TOOLBAR_KEY, "false"))
        else:
            pairs.append((STYLESHEET_KEY, HIDE_TOOLBAR_STYLESHEET))
    if not options.show_parameters:
        pairs.append((PARAMETERS_KEY, "Collapsed"))
    if options.zoom:
        pairs.append((ZOOM_KEY, options.zoom))
    return pairs


def control_keys(options: ComposeOptions) -> List[str]:
    return [key for key, _ in control_parameters(options)]


def apply_control_parameters(params: Dict[str, str], options: ComposeOptions) -> None:
    for key, value in control_parameters(options):
        params[key] = value


def compose_report_url(
    raw_url: str,
    options: ComposeOptions,
    custom_parameters: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Build the embeddable report address.

    Handles the report-server convention where the report path is the bare
    first query token (base?/Folder/Report&param=value). The path is escaped
    per segment with %2f separators; other parameters are form-encoded.
    Never raises: a malformed address is returned unchanged.
    """
    if not raw_url:
        return ""
    try:
        url, hash_sep, fragment = normalize_legacy_address(raw_url).partition("#")
        base_and_path, sep, query = url.partition("?")
        _validate_base(base_and_path)
        report_path, remaining = _split_report_path(query) if sep else ("", "")
        params = _parse_query(remaining)
        apply_control_parameters(params, options)
        for key, value in (custom_parameters or {}).items():
            params[key] = value
        param_string = urlencode(params, quote_via=quote_plus_compat)
        if report_path:
            composed = f"{base_and_path}?{encode_report_path(report_path)}"
            if param_string:
                composed += f"&{param_string}"
        else:
            composed = f"{base_and_path}?{param_string}" if param_string else base_and_path
        if hash_sep:
            composed += f"#{fragment}"
    except Exception as e:
        logger.error("Invalid report URL %r: %s", raw_url, e)
        return raw_url
    logger.debug("Built report URL: %s", composed)
    return composed


def quote_plus_compat(value: str, safe: str = "", encoding: Optional[str] = None, errors: Optional[str] = None) -> str:
    """Form encoding matching the browser's URLSearchParams serializer."""
    return quote_plus(value, safe="*", encoding=encoding, errors=errors)


@lru_cache(maxsize=256)
def _compose_cached(
    report_url: str,
    show_toolbar: bool,
    show_parameters: bool,
    zoom: str,
    report_parameters: str,
    toolbar_mode: str,
) -> Tuple[str, bool]:
    custom, valid = parse_custom_parameters(report_parameters)
    options = ComposeOptions(
        show_toolbar=show_toolbar,
        show_parameters=show_parameters,
        zoom=zoom,
        toolbar_mode=toolbar_mode,
    )
    return compose_report_url(report_url, options, custom), valid


def compose_for_config(config: Any, toolbar_mode: Optional[str] = None) -> Tuple[str, bool]:
    """
    Compose the address for a ViewerConfig, memoized on the address-affecting fields.
    Returns (url, custom_parameters_valid).
    """
    return _compose_cached(
        config.report_url,
        config.show_toolbar,
        config.show_parameters,
        config.zoom,
        config.report_parameters,
        toolbar_mode or default_toolbar_mode(),
    )
