"""Incident Triage — HTTP API.

Accepts a pasted description of a failed API call and returns the
normalized incident, its classification and an incident report.

Flow for one request:
    POST /api/analyze  {"input": "..."}
        → read the "input" field
        → TriageRuntime.analyze()
            → validate (presence, length, injection patterns)
            → normalize → classify → explain
            → best-effort history lookup
        → 200 {incident, classification, report}

Errors:
    400 {"error": ...}  input missing, not a string, too long, or rejected
    500 {"error": ...}  anything unexpected

Run locally:
    uv run uvicorn main:app --reload
"""

import logging
import logging.handlers
import pathlib
from functools import lru_cache

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from config import Settings
from core.factory import build_runtime
from core.guard import InputRejectedError
from core.runtime import TriageRuntime

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_FILE = pathlib.Path(__file__).parent / "incident_triage.log"
LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_file_handler = logging.handlers.RotatingFileHandler(
    LOG_FILE, maxBytes=1_000_000, backupCount=3, encoding="utf-8",
)
_file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

_root_logger = logging.getLogger()
_root_logger.setLevel(logging.INFO)
_root_logger.addHandler(_file_handler)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App + CORS
# ---------------------------------------------------------------------------

settings = Settings.from_env()

app = FastAPI(title="Incident Triage")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Runtime
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_runtime() -> TriageRuntime:
    """Build the runtime on first request and reuse it afterwards.

    Deferred to the first request so the app can be imported (and tested
    with an overridden dependency) without an OpenRouter key.
    """
    return build_runtime(settings)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/api/analyze")
async def analyze_incident(request: Request, runtime: TriageRuntime = Depends(get_runtime)):
    """Analyze one pasted incident and return incident, classification and report."""
    try:
        body = await request.json()
    except ValueError:
        return _error("Request body must be JSON with an \"input\" field.", 400)

    raw_input = body.get("input") if isinstance(body, dict) else None

    try:
        result = await runtime.analyze(raw_input)
        return JSONResponse(result.model_dump(mode="json", by_alias=True))
    except InputRejectedError as exc:
        logger.info("Rejected input: %s", exc)
        return _error(str(exc), 400)
    except Exception:
        logger.exception("Analysis failed with an unexpected error.")
        return _error("An unexpected error occurred while analyzing the incident.", 500)
