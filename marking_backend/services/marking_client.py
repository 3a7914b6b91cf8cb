import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..config import MarkingSettings
from ..models.schemas import EvaluateRequest, EvaluateResponse
from .errors import MissingApiKey, RemoteEvaluationError, TransportError

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 120


def _preview(text: str) -> str:
    text = text or ""
    return text[:_PREVIEW_CHARS] + ("...[truncated]" if len(text) > _PREVIEW_CHARS else "")


def _headers(settings: MarkingSettings) -> dict:
    headers = {"Content-Type": "application/json"}
    if settings.api_key:
        headers["x-api-key"] = settings.api_key
    return headers


async def call_evaluate_endpoint(
    body: EvaluateRequest,
    settings: MarkingSettings,
) -> EvaluateResponse:
    """
    One POST to the marking service's public evaluate endpoint.
    No retries; non-2xx and transport failures are raised to the caller.
    """
    if not settings.api_key and settings.require_api_key:
        raise MissingApiKey()

    url = settings.evaluate_url
    payload = body.model_dump()
    logger.debug(
        "[marking] POST %s question_type=%s user_id=%s authenticated=%s essay=%r",
        url, body.question_type, body.user_id, bool(settings.api_key), _preview(body.student_response),
    )

    try:
        async with httpx.AsyncClient(timeout=settings.timeout) as client:
            resp = await client.post(url, headers=_headers(settings), json=payload)
    except httpx.RequestError as e:
        logger.error("[marking] request to %s failed: %r", url, e)
        raise TransportError(e) from e

    if not (200 <= resp.status_code < 300):
        try:
            text = resp.text
        except Exception:
            text = ""
        logger.error("[marking] evaluate failed status=%s body=%s", resp.status_code, text[:500])
        raise RemoteEvaluationError(resp.status_code, text)

    try:
        data = resp.json()
    except ValueError:
        raise RemoteEvaluationError(
            resp.status_code, resp.text, msg="Marking API returned a non-JSON response."
        ) from None

    result = normalize_evaluate_response(data)
    if result is None:
        logger.error("[marking] unexpected response shape: %r", data)
        raise RemoteEvaluationError(
            resp.status_code, resp.text, msg="Marking API returned an unexpected response."
        )
    logger.debug("[marking] evaluate ok grade=%s short_id=%s", result.grade, result.short_id)
    return result


def _is_postback_envelope(body: Any) -> bool:
    return (
        isinstance(body, dict)
        and body.get("status") == "success"
        and body.get("status_code") == 200
        and isinstance(body.get("endpoint"), str)
        and isinstance(body.get("data"), dict)
    )


def normalize_evaluate_response(body: Any) -> Optional[EvaluateResponse]:
    """
    Accepts the direct evaluate response or the postback envelope the service
    sends to the Referer URL. Returns None when the payload is not an object
    or its known fields have the wrong types.
    """
    payload = body["data"] if _is_postback_envelope(body) else body
    if not isinstance(payload, dict):
        return None

    try:
        result = EvaluateResponse.model_validate(payload)
    except ValidationError:
        return None

    merged = result.improvement_suggestions or result.improvements
    if merged:
        result.improvement_suggestions = merged
        result.improvements = merged
    return result
