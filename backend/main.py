from __future__ import annotations

import logging
import os
import time
import uuid
from pathlib import Path

from dotenv import load_dotenv

# Load .env from backend directory so TOOLBAR_MODE, HEIGHT_* etc. are available
load_dotenv(Path(__file__).resolve().parent / ".env")

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from engine.compose import default_toolbar_mode
from reporting.agent import agent_interval_ms, build_agent_script
from routes.api import router as api_router
from services.frames import FrameNotFound, FrameRegistry, get_registry

VERSION = (os.environ.get("GIT_COMMIT") or "").strip() or "unknown"

_LOG = logging.getLogger("uvicorn.error")

app = FastAPI(title="Report Frame Backend", version="0.1.0")

# CORS: use ALLOWED_ORIGINS env (comma-separated) if set, else default
_origins_env = os.environ.get("ALLOWED_ORIGINS", "").strip()
if _origins_env:
    ALLOWED_ORIGINS = [o.strip() for o in _origins_env.split(",") if o.strip()]
else:
    ALLOWED_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        _LOG.info(
            "request_id=%s method=%s path=%s status=%s duration_ms=%.0f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        response.headers["X-Request-Id"] = request_id
        return response


app.add_middleware(RequestLogMiddleware)
app.include_router(api_router)


@app.on_event("startup")
def startup_log() -> None:
    port = os.environ.get("PORT", "8010")
    host = os.environ.get("HOST", "127.0.0.1")
    _LOG.info(
        "Report frame backend starting on http://%s:%s toolbar_mode=%s agent_interval_ms=%s version=%s",
        host, port, default_toolbar_mode(), agent_interval_ms(), VERSION,
    )


@app.on_event("shutdown")
def shutdown_frames() -> None:
    get_registry().clear()


@app.get("/health")
def health():
    return {"status": "ok", "version": VERSION}


@app.get("/health/measure")
def health_measure():
    """
    Runtime check for the offline measurement tool.
    Returns 200 only when Chromium can launch successfully.
    """
    try:
        from playwright.sync_api import sync_playwright
    except Exception:
        raise HTTPException(status_code=503, detail="Playwright is not installed.")

    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(args=["--no-sandbox"])
            page = browser.new_page()
            page.set_content("<html><body>ok</body></html>")
            browser.close()
    except Exception as e:
        msg = str(e)
        if len(msg) > 500:
            msg = msg[:500]
        raise HTTPException(
            status_code=503,
            detail=f"Playwright runtime unavailable: {msg}",
        ) from e

    return {"status": "ok", "measure_runtime": "ready"}


@app.get("/version")
def version():
    return {
        "version": VERSION,
        "source_file": str(Path(__file__).resolve()),
        "toolbar_mode": default_toolbar_mode(),
    }


@app.get("/agent.js")
def agent_script():
    """Reporter agent for inclusion in the report server's viewer page."""
    return Response(
        content=build_agent_script(),
        media_type="application/javascript",
        headers={"Cache-Control": "no-cache"},
    )


@app.get("/frames/{frame_id}", response_class=HTMLResponse)
def frame_page(frame_id: str, registry: FrameRegistry = Depends(get_registry)):
    try:
        page = registry.run(frame_id, lambda surface: surface.render(api_base="/api/v1"))
    except FrameNotFound:
        raise HTTPException(status_code=404, detail=f"Frame not found: {frame_id}")
    return HTMLResponse(content=page)


def get_app() -> FastAPI:
    """
    Convenience accessor for ASGI servers.
    """
    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8010")),
        reload=True,
    )
