from dataclasses import dataclass
from typing import Any, Dict, Protocol, Union

from ...schemas.analysis.analysis import AnalysisResult


@dataclass
class InferenceSuccess:
    result: AnalysisResult


@dataclass
class SchemaViolation:
    detail: str


@dataclass
class TransportError:
    detail: str


InferenceOutcome = Union[InferenceSuccess, SchemaViolation, TransportError]


class AIProvider(Protocol):
    async def analyze_image(self, prompt: str, image_bytes: bytes, mime_type: str, response_schema: Dict[str, Any]) -> InferenceOutcome:
        ...
