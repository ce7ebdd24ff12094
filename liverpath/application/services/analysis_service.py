import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from .history_service import HistoryManager
from ..ports.ai_provider import AIProvider, InferenceSuccess
from ..ports.storage_repo import StorageRepository
from ...exceptions import AnalysisFailedError
from ...media_utils import slide_filename, validate_slide_image
from ...schemas.analysis.analysis import ANALYSIS_RESPONSE_SCHEMA, AnalysisResult, HistoryRecord

logger = logging.getLogger(__name__)

LIVER_SLIDE_PROMPT = """Please analyze the provided image of a liver tissue slide. Identify key pathological features and provide a structured report. Your analysis should include:
1. An overall impression.
2. A list of key findings (e.g., steatosis, inflammation, fibrosis, ballooning, Mallory-Denk bodies).
3. A differential diagnosis based on the findings.
4. Recommendations for further tests or investigations.
Provide your response in the requested JSON format."""


def new_record_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AnalysisService:
    history: HistoryManager
    ai_provider: AIProvider
    storage_repo: StorageRepository
    id_factory: Callable[[], str] = field(default=new_record_id)
    clock: Callable[[], datetime] = field(default=utcnow)

    async def analyze(self, image_bytes: bytes, mime_type: str) -> AnalysisResult:
        validate_slide_image(image_bytes, mime_type)
        outcome = await self.ai_provider.analyze_image(LIVER_SLIDE_PROMPT, image_bytes, mime_type, ANALYSIS_RESPONSE_SCHEMA)
        if isinstance(outcome, InferenceSuccess):
            return outcome.result
        # Network and schema failures get the same treatment: ask the user to retry
        logger.error(f"Slide analysis failed ({type(outcome).__name__}): {outcome.detail}")
        raise AnalysisFailedError()

    async def analyze_and_record(self, email: str, image_bytes: bytes, mime_type: str) -> HistoryRecord:
        result = await self.analyze(image_bytes, mime_type)
        image_reference = self.storage_repo.save_bytes("slides", slide_filename(mime_type), image_bytes)
        record = HistoryRecord(
            id=self.id_factory(),
            date=self.clock(),
            image_reference=image_reference,
            result=result,
        )
        await self.history.append(email, record)
        logger.info(f"Recorded analysis {record.id} for {email}")
        return record
