import logging
from dataclasses import dataclass
from typing import List, Optional

from .record_repository import RecordRepository
from ...exceptions import OperationCancelled, RecordNotFoundError
from ...schemas.analysis.analysis import AnalysisResult, HistoryRecord

logger = logging.getLogger(__name__)


class CancellationToken:
    """Set by whoever abandons an operation; checked before any write."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelled("Operation was cancelled before it was applied")


def newest_first(records: List[HistoryRecord]) -> List[HistoryRecord]:
    return sorted(records, key=lambda r: r.date, reverse=True)


@dataclass
class HistoryManager:
    records: RecordRepository

    async def list(self, email: str) -> List[HistoryRecord]:
        return newest_first(await self.records.read_history(email))

    async def get(self, email: str, record_id: str) -> HistoryRecord:
        for record in await self.records.read_history(email):
            if record.id == record_id:
                return record
        raise RecordNotFoundError(record_id)

    async def append(self, email: str, record: HistoryRecord) -> List[HistoryRecord]:
        stored = await self.records.load_history(email)
        updated = [record] + newest_first(stored.records)
        await self.records.write_history(email, updated, previous=stored)
        logger.info(f"Appended analysis {record.id} for {email} ({len(updated)} total)")
        return newest_first(updated)

    async def replace(
        self,
        email: str,
        record_id: str,
        new_result: AnalysisResult,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[HistoryRecord]:
        stored = await self.records.load_history(email)
        history = newest_first(stored.records)
        index = next((i for i, r in enumerate(history) if r.id == record_id), None)
        if index is None:
            logger.warning(f"Replace requested for unknown analysis {record_id} ({email})")
            raise RecordNotFoundError(record_id)

        history[index] = history[index].model_copy(update={"result": new_result.model_copy(deep=True)})
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        await self.records.write_history(email, history, previous=stored)
        logger.info(f"Updated analysis {record_id} for {email}")
        return history

    async def clear(self, email: str) -> None:
        await self.records.delete_history(email)
        logger.info(f"Cleared analysis history for {email}")
