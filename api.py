"""
api.py — FastAPI service: the HTTP boundary of homework-watch.

ENDPOINTS:
  GET  /api/assignments  → fetch + normalize the watched page once
  POST /api/summarize    → summarize the change between two page versions
  GET  /api/history      → the summary feed the dashboard renders
  POST /api/check        → run one poll cycle now ("Check now")
  GET  /health           → configuration flags

LIFESPAN:
  The poll loop starts with the app and stops with it. There is exactly one
  Poller per process; it owns the previous-content slot and the history.

ERROR MAPPING:
  FetchError       → 500 {success: false, error}
  ValidationError  → 400 {success: false, error: "Missing content"}, also
                     for an empty, non-JSON or non-object request body
  SummarizeError   → 500 {success: false, error}
  Unparseable model output is not an error: it is a 200 with
  hasChanges=false and "Unable to parse changes".

Run with:
  uv run uvicorn api:app --port 8000
"""

import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.concurrency import run_in_threadpool

from config import settings
from llm.client import LLMClient
from tools.fetch import FetchError, fetch_or_raise
from watcher.guardrails import ValidationError, is_safe_url, validate_content_pair
from watcher.poller import Poller
from watcher.summarizer import SummarizeError, Summarizer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Singletons
# ---------------------------------------------------------------------------

_poller: Poller | None = None
_summarizer: Summarizer | None = None


def get_poller() -> Poller:
    global _poller
    if _poller is None:
        _poller = Poller()
    return _poller


def get_summarizer() -> Summarizer:
    global _summarizer
    if _summarizer is None:
        _summarizer = Summarizer(client=LLMClient())
    return _summarizer


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the poll loop on app startup, stop it on shutdown."""
    poller = get_poller()
    if not settings.poll_enabled:
        logger.info("Polling disabled (POLL_ENABLED=false)")
    elif not is_safe_url(settings.target_url):
        logger.error(f"Refusing to poll unsafe target URL: {settings.target_url!r}")
    else:
        poller.start()
    yield
    poller.stop()


app = FastAPI(title="Homework Watch API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get("/health")
def health():
    return {
        "status": "ok",
        "target_url": settings.target_url,
        "llm_configured": bool(settings.llm_api_key),
        "reader_enabled": settings.use_reader,
        "reader_key_configured": bool(settings.reader_api_key),
        "polling": get_poller().is_running,
    }


# ---------------------------------------------------------------------------
# Page fetch
# ---------------------------------------------------------------------------

@app.get("/api/assignments")
def get_assignments():
    try:
        result = fetch_or_raise()
    except FetchError as e:
        logger.error(f"Scrape error: {e}")
        return _error(500, str(e) or "Failed to fetch page")
    return result.to_dict()


# ---------------------------------------------------------------------------
# Summarize
# ---------------------------------------------------------------------------

async def _read_json_object(request: Request) -> dict:
    """The request body as a dict. A missing, malformed or non-object body reads as {}."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


@app.post("/api/summarize")
async def summarize(request: Request):
    data = await _read_json_object(request)
    try:
        previous, current = validate_content_pair(data.get("previousContent"), data.get("currentContent"))
    except ValidationError as e:
        return _error(400, str(e))

    try:
        record = await run_in_threadpool(get_summarizer().summarize, previous, current)
    except SummarizeError as e:
        logger.error(f"Summarize error: {e}")
        return _error(500, str(e) or "Failed to summarize")

    body = record.to_dict()
    body.pop("timestamp")
    return {"success": True, **body}


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------

@app.get("/api/history")
def get_history():
    poller = get_poller()
    history = poller.history
    status = poller.status()
    return {
        "success": True,
        "updates": [r.to_dict() for r in history.snapshot()],
        "totalUpdates": history.updates_count(),
        **status.to_dict(),
    }


@app.post("/api/check")
def check_now():
    result = get_poller().tick()
    return {"success": True, **result.to_dict()}
