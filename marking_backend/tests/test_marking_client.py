import asyncio

import httpx
import pytest

from marking_backend import config
from marking_backend.config import MarkingSettings
from marking_backend.models.schemas import EvaluateRequest
from marking_backend.services import marking_client
from marking_backend.services.errors import (
    ConfigurationError,
    MissingApiKey,
    RemoteEvaluationError,
    TransportError,
)


def _call(body, settings):
    return asyncio.run(marking_client.call_evaluate_endpoint(body, settings))


def _body(**kw):
    return EvaluateRequest(question_type="igcse_narrative", student_response="Once upon a time.", **kw)


def test_posts_json_with_api_key(marking_api, settings):
    marking_api.reply(200, {"feedback": "Good", "grade": "B", "style_accuracy_marks": 18})

    resp = _call(_body(user_id="u-1"), settings)

    assert len(marking_api.calls) == 1
    call = marking_api.calls[0]
    assert call["url"] == "https://marking.example/api/public/evaluate"
    assert call["headers"] == {"Content-Type": "application/json", "x-api-key": "test-key"}
    assert call["json"] == {
        "question_type": "igcse_narrative",
        "student_response": "Once upon a time.",
        "marking_scheme": None,
        "command_word": None,
        "text_type": None,
        "insert_document": None,
        "user_id": "u-1",
    }
    assert marking_api.timeout == 5
    assert resp.feedback == "Good"
    assert resp.field("style_accuracy_marks") == 18


def test_empty_string_fields_are_sent_as_given(marking_api, settings):
    marking_api.reply(200, {"feedback": "", "grade": ""})
    _call(_body(command_word=""), settings)
    assert marking_api.calls[0]["json"]["command_word"] == ""
    assert marking_api.calls[0]["json"]["text_type"] is None


def test_no_api_key_sends_unauthenticated(marking_api):
    marking_api.reply(200, {"feedback": "ok", "grade": "C"})
    _call(_body(), MarkingSettings(base_url="https://marking.example"))
    assert "x-api-key" not in marking_api.calls[0]["headers"]


def test_required_api_key_fails_closed(marking_api):
    with pytest.raises(MissingApiKey) as ei:
        _call(_body(), MarkingSettings(base_url="https://marking.example", require_api_key=True))
    assert isinstance(ei.value, ConfigurationError)
    assert marking_api.calls == []


def test_http_500_surfaces_status_and_body(marking_api, settings):
    marking_api.reply(500, text="internal error")
    with pytest.raises(RemoteEvaluationError) as ei:
        _call(_body(), settings)
    assert ei.value.status_code == 500
    assert ei.value.body == "internal error"
    assert "500" in str(ei.value)


def test_transport_failure_wraps_cause(marking_api, settings):
    cause = httpx.ConnectError("connection refused", request=httpx.Request("POST", "https://marking.example"))
    marking_api.fail(cause)
    with pytest.raises(TransportError) as ei:
        _call(_body(), settings)
    assert ei.value.cause is cause


def test_timeout_is_a_transport_failure(marking_api, settings):
    marking_api.fail(httpx.ReadTimeout("timeout", request=httpx.Request("POST", "https://marking.example")))
    with pytest.raises(TransportError):
        _call(_body(), settings)


def test_non_json_success_is_remote_error(marking_api, settings):
    marking_api.reply(200, text="<html>gateway</html>")
    with pytest.raises(RemoteEvaluationError) as ei:
        _call(_body(), settings)
    assert ei.value.status_code == 200
    assert ei.value.body == "<html>gateway</html>"


def test_postback_envelope_is_unwrapped(marking_api, settings):
    marking_api.reply(200, {
        "endpoint": "/api/public/evaluate",
        "status": "success",
        "status_code": 200,
        "data": {"feedback": "Vivid.", "grade": "A", "content_structure_marks": 14, "short_id": "abc123"},
    })
    resp = _call(_body(), settings)
    assert resp.grade == "A"
    assert resp.short_id == "abc123"
    assert resp.field("content_structure_marks") == 14


def test_improvement_lists_are_merged(marking_api, settings):
    marking_api.reply(200, {"feedback": "x", "grade": "B", "improvements": ["Vary sentence openings"]})
    resp = _call(_body(), settings)
    assert resp.improvement_suggestions == ["Vary sentence openings"]
    assert resp.improvements == ["Vary sentence openings"]


def test_missing_fields_are_not_validated(marking_api, settings):
    marking_api.reply(200, {})
    resp = _call(_body(), settings)
    assert resp.feedback is None
    assert resp.field("reading_marks") is None


def test_wrongly_typed_fields_are_rejected(marking_api, settings):
    marking_api.reply(200, {"feedback": "ok", "grade": "B", "strengths": "not a list"})
    with pytest.raises(RemoteEvaluationError):
        _call(_body(), settings)


def test_load_settings_env_precedence(monkeypatch):
    monkeypatch.delenv("MARKING_API_URL", raising=False)
    monkeypatch.delenv("MARKING_API_KEY", raising=False)
    monkeypatch.setenv("ENGLISHGPT_API_URL", "https://egpt.example")
    monkeypatch.setenv("PUBLIC_MARKING_API_BASE_URL", "https://public.example")
    monkeypatch.setenv("ENGLISHGPT_API_KEY", "  ")
    monkeypatch.setenv("INTERNAL_API_KEY", "internal")
    monkeypatch.setenv("MARKING_API_TIMEOUT", "30")

    s = config.load_settings()
    assert s.base_url == "https://egpt.example"
    assert s.api_key == "internal"
    assert s.timeout == 30.0
    assert s.require_api_key is False


def test_load_settings_defaults(monkeypatch):
    for name in ("MARKING_API_URL", "MARKING_API_KEY", "MARKING_API_TIMEOUT", "MARKING_REQUIRE_API_KEY"):
        monkeypatch.delenv(name, raising=False)

    s = config.load_settings()
    assert s.base_url == config.DEFAULT_API_URL
    assert s.api_key is None
    assert s.evaluate_url == "https://englishgpt.everythingenglish.xyz/api/public/evaluate"


def test_summary_never_leaks_key(settings):
    out = config.summary(settings, safe=False)
    assert "test-key" not in str(out)
    assert out["api_key_present"] is True
    assert "api_key_present" not in config.summary(settings)


class _UnreadableResponse:
    status_code = 502

    @property
    def text(self):
        raise httpx.ReadError("connection reset while reading body")


def test_unreadable_error_body_degrades_to_empty(marking_api, settings):
    marking_api.responses.append(_UnreadableResponse())
    with pytest.raises(RemoteEvaluationError) as ei:
        _call(_body(), settings)
    assert ei.value.status_code == 502
    assert ei.value.body == ""
    assert len(marking_api.calls) == 1


@pytest.mark.parametrize("raw", ["2m", "-5", "0", "abc"])
def test_bad_timeout_falls_back_to_default(monkeypatch, raw):
    monkeypatch.setenv("MARKING_API_TIMEOUT", raw)
    assert config.load_settings().timeout == config.DEFAULT_TIMEOUT
