import os
import logging
if __name__ == "__main__":
    raise SystemExit("Run with: python -m uvicorn marking_backend.app:app --reload --port 8000")
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response
from pydantic import BaseModel
from dotenv import load_dotenv

_here = Path(__file__).resolve().parent
load_dotenv(_here / ".env")                         # marking_backend/.env
load_dotenv(_here.parent / ".env", override=False)  # project root .env (optional)

from .config import load_settings, summary
from .models.schemas import EvaluationResult
from .services import criteria
from .services.evaluation import evaluate_essay
from .services.errors import (
    ConfigurationError,
    RemoteEvaluationError,
    TransportError,
    UnknownQuestionType,
)

# ---------------------------------------
# App logger + settings bootstrap
# ---------------------------------------
logger = logging.getLogger("marking_backend")
if not logger.handlers:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

BOOT_VERSION = "0.1.0"

# NOTE: tests may monkeypatch this global. Keep it as a simple module-level var.
settings = load_settings()

for _warning in criteria.validate_registry():
    logger.warning("[boot] registry: %s", _warning)

app = FastAPI()
FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "http://localhost:5173")
_allowed = sorted({FRONTEND_ORIGIN, "http://localhost:5173", "http://127.0.0.1:5173"})
app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
    max_age=600,
)

logger.info("[boot] version=%s", BOOT_VERSION)
logger.info("[boot] env | %s | CORS allow_origins=%s", summary(settings, safe=False), _allowed)


# Generic OPTIONS handler for CORS preflight
@app.options("/api/{path:path}")
async def options_any(path: str) -> Response:
    return Response(status_code=204)


# ── Health ───────────────────────────────────────────────────────────────
@app.get("/health")
@app.get("/api/health")
def health():
    return {"ok": True, "service": "marking-backend"}


@app.get("/api/config")
def config_probe():
    out = summary(settings, safe=True)
    out["question_types"] = sorted(criteria.QUESTION_TOTALS)
    return out


@app.get("/api/question-types")
def list_question_types():
    items = []
    for qid, qtype in criteria.QUESTION_TYPES.items():
        totals = criteria.get_question_totals(qid)
        items.append({
            **qtype.model_dump(),
            "total": totals.total if totals else None,
            "components": dict(totals.components) if totals else {},
            "variants": sorted(a for a, parent in criteria.QUESTION_TYPE_ALIASES.items() if parent == qid),
        })
    return {"ok": True, "items": items}


# ── Evaluate ─────────────────────────────────────────────────────────────
class EvaluateBody(BaseModel):
    question_type: str
    essay: str
    command_word: Optional[str] = None
    text_type: Optional[str] = None
    insert_document: Optional[str] = None
    user_id: Optional[str] = None


def _error(status_code: int, detail: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, "message": message, **extra})


@app.post("/api/evaluate")
async def evaluate(body: EvaluateBody):
    try:
        question_type = criteria.resolve_question_type(body.question_type)
        result: EvaluationResult = await evaluate_essay(
            question_type,
            body.essay,
            command_word=body.command_word,
            text_type=body.text_type,
            insert_document=body.insert_document,
            user_id=body.user_id,
            settings=settings,
        )
    except UnknownQuestionType as e:
        logger.info("evaluate rejected question_type=%r", body.question_type)
        return _error(404, "unsupported_question_type", str(e), question_type=e.question_type)
    except ConfigurationError as e:
        logger.error("evaluate configuration error: %s", e)
        return _error(500, "configuration_error", str(e))
    except RemoteEvaluationError as e:
        logger.warning("evaluate upstream status=%s", e.status_code)
        return _error(502, "marking_service_error", str(e), upstream_status=e.status_code)
    except TransportError as e:
        logger.warning("evaluate transport failure: %r", e.cause)
        return _error(503, "marking_service_unreachable", "Could not reach the marking service.")

    return {"ok": True, "result": result.model_dump()}
