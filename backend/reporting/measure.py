"""
Offline report height measurement with headless Chromium (Playwright).
Uses the same measurement policy as the in-frame reporter agent.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional

from engine.compose import ComposeOptions, compose_report_url
from models import MeasurementResult

from .agent import build_measure_function


@dataclass
class MeasureConfig:
    wait_time_ms: int = 3000
    timeout_ms: int = 30000
    embed_mode: bool = True
    hide_toolbar: bool = True
    hide_parameters: bool = False
    headless: bool = True
    viewport: dict = field(default_factory=lambda: {"width": 1024, "height": 768})


def build_measure_url(url: str, config: MeasureConfig) -> str:
    if not config.embed_mode:
        return url
    options = ComposeOptions(
        show_toolbar=not config.hide_toolbar,
        show_parameters=not config.hide_parameters,
        toolbar_mode="parameter",
    )
    return compose_report_url(url, options)


def load_urls(args: List[str]) -> List[str]:
    """Read URLs from a file given as the first argument, else treat arguments as URLs."""
    if not args:
        return []
    first = Path(args[0])
    if first.is_file():
        lines = first.read_text(encoding="utf-8").splitlines()
        return [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]
    return [a for a in args if a.strip()]


def measure_report(page: Any, url: str, config: MeasureConfig) -> MeasurementResult:
    """Measure one report on an open Playwright page. Failures are recorded, not raised."""
    final_url = build_measure_url(url, config)
    try:
        page.goto(final_url, wait_until="networkidle", timeout=config.timeout_ms)
        page.wait_for_timeout(config.wait_time_ms)
        measured = page.evaluate(build_measure_function())
        return MeasurementResult(
            success=True,
            url=url,
            final_url=final_url,
            height=int(measured["height"]),
            strategy=measured.get("strategy") or "document",
        )
    except Exception as e:
        return MeasurementResult(success=False, url=url, final_url=final_url, error=str(e))


def measure_reports(urls: Iterable[str], config: Optional[MeasureConfig] = None) -> List[MeasurementResult]:
    from playwright.sync_api import sync_playwright

    config = config or MeasureConfig()
    results: List[MeasurementResult] = []
    with sync_playwright() as p:
        browser = p.chromium.launch(
            headless=config.headless,
            args=["--no-sandbox", "--disable-setuid-sandbox"],
        )
        page = browser.new_page(viewport=config.viewport)
        for url in urls:
            results.append(measure_report(page, url, config))
        browser.close()
    return results


def report_name(url: str) -> str:
    return url.rstrip("/").split("/")[-1].split("?")[0] or url


def summarize_results(results: List[MeasurementResult]) -> str:
    successful = [r for r in results if r.success]
    failed = [r for r in results if not r.success]
    lines = [
        "MEASUREMENT RESULTS",
        f"Total: {len(results)} | Success: {len(successful)} | Failed: {len(failed)}",
    ]
    if successful:
        lines += ["", "CSV FORMAT:", "URL,Height"]
        lines += [f'"{r.url}",{r.height}' for r in successful]
        lines += ["", "JSON FORMAT:"]
        lines.append(json.dumps([{"url": r.url, "height": r.height} for r in successful], indent=2))
        lines += ["", "QUICK REFERENCE:"]
        lines += [f"{report_name(r.url)}: {r.height}px" for r in successful]
    if failed:
        lines += ["", "FAILED MEASUREMENTS:"]
        for r in failed:
            lines += [f"URL: {r.url}", f"Error: {r.error}"]
    return "\n".join(lines) + "\n"


def write_results(results: List[MeasurementResult], path: Path) -> None:
    path.write_text(
        json.dumps([r.model_dump(mode="json") for r in results], indent=2),
        encoding="utf-8",
    )
