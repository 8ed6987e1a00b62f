"""
Add the height agent to a report server viewer page (e.g. ReportViewer.aspx),
so it runs inside the report content and posts heights to the host frame.

Usage:
  cd backend
  python3 scripts/patch_report_viewer.py /path/to/ReportViewer.aspx
  python3 scripts/patch_report_viewer.py ReportViewer.aspx --src https://frames.example.com/agent.js
"""
from __future__ import annotations

import argparse
from pathlib import Path
import sys

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from reporting.agent import inject_agent_script


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Inject the report height agent into a viewer page.")
    ap.add_argument("page", help="Viewer page to patch in place.")
    ap.add_argument("--src", default=None, help="Reference the agent by URL instead of inlining it.")
    ap.add_argument("--interval-ms", type=int, default=None, help="Reporting interval for an inlined agent.")
    ap.add_argument("--dry-run", action="store_true", help="Print the patched page instead of writing it.")
    return ap


def patch_page(path: Path, src: str | None = None, interval_ms: int | None = None) -> tuple[str, bool]:
    original = path.read_text(encoding="utf-8")
    patched = inject_agent_script(original, script_src=src, interval_ms=interval_ms)
    return patched, patched != original


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    path = Path(args.page)
    if not path.is_file():
        print(f"Error: not a file: {path}", file=sys.stderr)
        return 1
    patched, changed = patch_page(path, src=args.src, interval_ms=args.interval_ms)
    if args.dry_run:
        print(patched)
        return 0
    if not changed:
        print(f"Already patched: {path}")
        return 0
    path.write_text(patched, encoding="utf-8")
    print(f"Patched: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
