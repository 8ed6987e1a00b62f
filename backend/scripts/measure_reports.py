"""
Measure rendered report heights in headless Chromium, for tuning declared heights.

Usage:
  cd backend
  python3 scripts/measure_reports.py reports.txt
  python3 scripts/measure_reports.py "https://reports/ReportServer?/Sales/Monthly" "https://reports/ReportServer?/HR/Employees"

Requires: pip install playwright && playwright install chromium
"""
from __future__ import annotations

import argparse
from pathlib import Path
import sys

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from reporting.measure import MeasureConfig, load_urls, measure_reports, summarize_results, write_results


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Measure report heights with headless Chromium.")
    ap.add_argument("sources", nargs="*", help="A file of URLs (one per line, # comments) or URLs.")
    ap.add_argument("--output", default="report-heights.json", help="Where to write the JSON results.")
    ap.add_argument("--wait-ms", type=int, default=3000, help="Extra wait after load for rendering.")
    ap.add_argument("--timeout-ms", type=int, default=30000, help="Page load timeout.")
    ap.add_argument("--show-toolbar", action="store_true", help="Measure with the viewer toolbar visible.")
    ap.add_argument("--hide-parameters", action="store_true", help="Collapse the parameters area.")
    ap.add_argument("--headed", action="store_true", help="Run the browser with a window.")
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    urls = load_urls(args.sources)
    if not urls:
        print("Error: No URLs or file provided", file=sys.stderr)
        return 1

    config = MeasureConfig(
        wait_time_ms=args.wait_ms,
        timeout_ms=args.timeout_ms,
        hide_toolbar=not args.show_toolbar,
        hide_parameters=args.hide_parameters,
        headless=not args.headed,
    )
    print(f"Reports to measure: {len(urls)}")
    try:
        results = measure_reports(urls, config)
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1

    print(summarize_results(results))
    out = Path(args.output)
    write_results(results, out)
    print(f"Results saved to: {out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
