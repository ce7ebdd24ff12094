import json
from datetime import datetime, timezone

import pytest

from liverpath.application.ports.ai_provider import InferenceSuccess, SchemaViolation, TransportError
from liverpath.application.services.analysis_service import LIVER_SLIDE_PROMPT, AnalysisService
from liverpath.exceptions import AnalysisFailedError, ImageTooLargeError, UnsupportedImageError
from liverpath.infrastructure.ai.gemini_provider import GeminiProvider, interpret_response
from liverpath.schemas.analysis.analysis import ANALYSIS_RESPONSE_SCHEMA

from conftest import make_result, png_bytes

EMAIL = "doc@example.com"


class FakeAI:
    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    async def analyze_image(self, prompt, image_bytes, mime_type, response_schema):
        self.calls.append((prompt, mime_type, response_schema))
        return self.outcome


class FakeStorage:
    def __init__(self):
        self.saved = []

    def save_bytes(self, subdir: str, filename: str, data: bytes) -> str:
        self.saved.append((subdir, filename, data))
        return f"/tmp/{subdir}/{filename}"


def service(history, outcome):
    ai = FakeAI(outcome)
    storage = FakeStorage()
    svc = AnalysisService(
        history=history,
        ai_provider=ai,
        storage_repo=storage,
        id_factory=lambda: "fixed-id",
        clock=lambda: datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc),
    )
    return svc, ai, storage


@pytest.mark.asyncio
async def test_analyze_and_record_happy_path(history):
    svc, ai, storage = service(history, InferenceSuccess(make_result("NASH")))

    record = await svc.analyze_and_record(EMAIL, png_bytes(), "image/png")

    assert record.id == "fixed-id"
    assert record.image_reference == "/tmp/slides/slide.png"
    assert record.result.differential_diagnosis == "NASH"
    assert ai.calls == [(LIVER_SLIDE_PROMPT, "image/png", ANALYSIS_RESPONSE_SCHEMA)]
    assert [r.id for r in await history.list(EMAIL)] == ["fixed-id"]


@pytest.mark.asyncio
@pytest.mark.parametrize("outcome", [SchemaViolation("missing keyFindings"), TransportError("timeout")])
async def test_failures_are_opaque_and_store_nothing(history, outcome):
    svc, _, storage = service(history, outcome)

    with pytest.raises(AnalysisFailedError) as exc:
        await svc.analyze_and_record(EMAIL, png_bytes(), "image/png")

    assert "timeout" not in str(exc.value)
    assert storage.saved == []
    assert await history.list(EMAIL) == []


@pytest.mark.asyncio
async def test_rejects_unsupported_mime_before_inference(history):
    svc, ai, _ = service(history, InferenceSuccess(make_result()))
    with pytest.raises(UnsupportedImageError):
        await svc.analyze(png_bytes(), "application/pdf")
    assert ai.calls == []


@pytest.mark.asyncio
async def test_rejects_undecodable_image(history):
    svc, ai, _ = service(history, InferenceSuccess(make_result()))
    with pytest.raises(UnsupportedImageError):
        await svc.analyze(b"definitely not a png", "image/png")
    assert ai.calls == []


@pytest.mark.asyncio
async def test_rejects_oversized_image(history, monkeypatch):
    from liverpath.core.config import settings
    monkeypatch.setattr(settings, "MAX_FILE_SIZE", 10)
    svc, _, _ = service(history, InferenceSuccess(make_result()))
    with pytest.raises(ImageTooLargeError):
        await svc.analyze(png_bytes(), "image/png")


def _payload(**overrides):
    payload = make_result().model_dump(by_alias=True)
    payload.update(overrides)
    return payload


def test_interpret_response_success():
    outcome = interpret_response(json.dumps(_payload()))
    assert isinstance(outcome, InferenceSuccess)
    assert outcome.result.key_findings[0].finding == "Steatosis"


def test_interpret_response_accepts_legacy_field_name():
    payload = _payload()
    payload["potentialDiagnosis"] = payload.pop("differentialDiagnosis")
    outcome = interpret_response(json.dumps(payload))
    assert isinstance(outcome, InferenceSuccess)
    assert outcome.result.differential_diagnosis == "NASH"


@pytest.mark.parametrize("text", [
    None,
    "",
    "not json",
    "[1, 2]",
    json.dumps({"overallImpression": "only this"}),
    json.dumps(_payload(recommendations=None)),
    json.dumps(_payload(keyFindings=[{"finding": "Steatosis"}])),
])
def test_interpret_response_schema_violations(text):
    assert isinstance(interpret_response(text), SchemaViolation)


@pytest.mark.asyncio
async def test_gemini_provider_without_key_is_transport_error():
    provider = GeminiProvider(api_key="")
    outcome = await provider.analyze_image(LIVER_SLIDE_PROMPT, png_bytes(), "image/png", ANALYSIS_RESPONSE_SCHEMA)
    assert isinstance(outcome, TransportError)


@pytest.mark.asyncio
async def test_gemini_provider_wraps_sdk_errors(monkeypatch):
    provider = GeminiProvider(api_key="")

    class ExplodingModel:
        def generate_content(self, *args, **kwargs):
            raise RuntimeError("quota exceeded")

    provider.model = ExplodingModel()
    outcome = await provider.analyze_image(LIVER_SLIDE_PROMPT, png_bytes(), "image/png", ANALYSIS_RESPONSE_SCHEMA)
    assert isinstance(outcome, TransportError)
    assert "quota" in outcome.detail


@pytest.mark.asyncio
async def test_gemini_provider_parses_model_text():
    provider = GeminiProvider(api_key="")

    class Response:
        text = json.dumps(_payload())

    class StubModel:
        def generate_content(self, contents, generation_config=None):
            self.contents = contents
            return Response()

    provider.model = StubModel()
    outcome = await provider.analyze_image(LIVER_SLIDE_PROMPT, png_bytes(), "image/png", ANALYSIS_RESPONSE_SCHEMA)
    assert isinstance(outcome, InferenceSuccess)
    assert provider.model.contents[1] == LIVER_SLIDE_PROMPT
