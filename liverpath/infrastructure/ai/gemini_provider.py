import asyncio
import json
import logging
from typing import Any, Dict, Optional

import google.generativeai as genai
from pydantic import ValidationError

from ...core.config import settings
from ...application.ports.ai_provider import (
    AIProvider,
    InferenceOutcome,
    InferenceSuccess,
    SchemaViolation,
    TransportError,
)
from ...application.services.record_repository import migrate_history
from ...schemas.analysis.analysis import AnalysisResult

logger = logging.getLogger(__name__)


def interpret_response(text: Optional[str]) -> InferenceOutcome:
    """Turn raw model output into a tagged outcome."""
    if not text or not text.strip():
        return SchemaViolation("empty response")
    try:
        payload = json.loads(text.strip())
    except json.JSONDecodeError as e:
        return SchemaViolation(f"response is not JSON: {e}")
    if not isinstance(payload, dict):
        return SchemaViolation("response is not a JSON object")

    # Accept the retired field name as a synonym
    migrate_history([{"result": payload}])
    try:
        return InferenceSuccess(AnalysisResult.model_validate(payload))
    except ValidationError as e:
        return SchemaViolation(f"response does not match schema ({e.error_count()} errors)")


class GeminiProvider(AIProvider):
    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None, temperature: Optional[float] = None) -> None:
        self.api_key = settings.GEMINI_API_KEY if api_key is None else api_key
        self.model_name = model_name or settings.GEMINI_MODEL
        self.temperature = settings.GEMINI_TEMPERATURE if temperature is None else temperature
        self.model = None
        if not self.api_key:
            logger.warning("GEMINI_API_KEY not configured")
            return
        genai.configure(api_key=self.api_key)
        self.model = genai.GenerativeModel(self.model_name)

    def _generate(self, prompt: str, image_bytes: bytes, mime_type: str, response_schema: Dict[str, Any]) -> str:
        result = self.model.generate_content(
            [
                {"mime_type": mime_type, "data": image_bytes},
                prompt,
            ],
            generation_config=genai.GenerationConfig(
                response_mime_type="application/json",
                response_schema=response_schema,
                temperature=self.temperature,
            ),
        )
        return result.text

    async def analyze_image(self, prompt: str, image_bytes: bytes, mime_type: str, response_schema: Dict[str, Any]) -> InferenceOutcome:
        if self.model is None:
            return TransportError("GEMINI_API_KEY not configured")
        try:
            text = await asyncio.to_thread(self._generate, prompt, image_bytes, mime_type, response_schema)
        except Exception as e:
            # The SDK raises a wide range of transport and quota errors
            logger.error(f"Error calling Gemini API: {e}")
            return TransportError(str(e))
        return interpret_response(text)
