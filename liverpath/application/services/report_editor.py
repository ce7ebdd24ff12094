"""
Viewing/editing state machine for one analysis report.

A session starts in ``VIEWING`` on the committed result of a record.
``begin_edit`` copies that result into a draft; the ``mutate_*`` methods
change one leaf of the draft; ``cancel`` throws the draft away and
``commit`` writes it through the history manager.  While a commit is in
flight the draft is frozen: mutations and ``cancel`` are refused.  Loading
another record always drops back to ``VIEWING``.
"""

import logging
import time
from enum import Enum
from typing import Callable, List, Optional

from .history_service import CancellationToken, HistoryManager
from ...core.config import settings
from ...exceptions import InvalidTransitionError
from ...schemas.analysis.analysis import AnalysisResult, HistoryRecord

logger = logging.getLogger(__name__)

_SCALAR_FIELDS = {
    "overallImpression": "overall_impression",
    "overall_impression": "overall_impression",
    "differentialDiagnosis": "differential_diagnosis",
    "differential_diagnosis": "differential_diagnosis",
}

_FINDING_FIELDS = ("finding", "description")


class EditState(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"


class ReportEditSession:
    def __init__(
        self,
        history: HistoryManager,
        account_email: str,
        record: HistoryRecord,
        ack_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.history = history
        self.account_email = account_email
        self.ack_seconds = settings.SAVE_ACK_SECONDS if ack_seconds is None else ack_seconds
        self._clock = clock
        self._pending: Optional[CancellationToken] = None
        self._saved_until: Optional[float] = None
        self.load(record)

    @property
    def record(self) -> HistoryRecord:
        return self._record

    @property
    def committed(self) -> AnalysisResult:
        return self._record.result

    @property
    def draft(self) -> Optional[AnalysisResult]:
        return self._draft

    @property
    def displayed(self) -> AnalysisResult:
        """What the report view should render right now."""
        return self._draft if self.state is EditState.EDITING else self.committed

    @property
    def committing(self) -> bool:
        return self._pending is not None

    @property
    def saved_acknowledged(self) -> bool:
        return self._saved_until is not None and self._clock() < self._saved_until

    def load(self, record: HistoryRecord) -> None:
        self._cancel_pending()
        self._record = record.model_copy(deep=True)
        self._draft: Optional[AnalysisResult] = None
        self._saved_until = None
        self.state = EditState.VIEWING

    def close(self) -> None:
        self._cancel_pending()
        self._draft = None
        self.state = EditState.VIEWING

    def begin_edit(self) -> None:
        if self.state is not EditState.VIEWING:
            raise InvalidTransitionError("Report is already being edited")
        self._draft = self.committed.model_copy(deep=True)
        self._saved_until = None
        self.state = EditState.EDITING

    def _require_editing(self) -> AnalysisResult:
        if self.state is not EditState.EDITING or self._draft is None:
            raise InvalidTransitionError("Report is not being edited")
        return self._draft

    def _require_idle_draft(self) -> AnalysisResult:
        # A save in flight has already snapshotted the draft
        if self._pending is not None:
            raise InvalidTransitionError("Report is being saved")
        return self._require_editing()

    def mutate_field(self, field: str, value: str) -> None:
        draft = self._require_idle_draft()
        try:
            attr = _SCALAR_FIELDS[field]
        except KeyError:
            raise ValueError(f"Unknown report field '{field}'") from None
        setattr(draft, attr, value)

    def mutate_finding(self, index: int, subfield: str, value: str) -> None:
        draft = self._require_idle_draft()
        if subfield not in _FINDING_FIELDS:
            raise ValueError(f"Unknown finding field '{subfield}'")
        setattr(_at(draft.key_findings, index), subfield, value)

    def mutate_recommendation(self, index: int, value: str) -> None:
        draft = self._require_idle_draft()
        _at(draft.recommendations, index)
        draft.recommendations[index] = value

    def cancel(self) -> None:
        self._require_idle_draft()
        self._draft = None
        self.state = EditState.VIEWING

    async def commit(self) -> List[HistoryRecord]:
        """
        Persist the draft and return to viewing.

        The store write completes before the state changes.  If it fails the
        session stays in ``EDITING`` with the draft untouched and the error
        propagates.
        """
        draft = self._require_idle_draft()
        token = CancellationToken()
        self._pending = token
        snapshot = draft.model_copy(deep=True)
        try:
            history = await self.history.replace(self.account_email, self._record.id, snapshot, cancel_token=token)
        finally:
            if self._pending is token:
                self._pending = None

        if token.cancelled:
            # Session moved on while the write was in flight
            return history

        self._record = self._record.model_copy(update={"result": snapshot})
        self._draft = None
        self.state = EditState.VIEWING
        self._saved_until = self._clock() + self.ack_seconds
        logger.info(f"Saved edits to analysis {self._record.id}")
        return history

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None


def _at(items: list, index: int):
    # Negative indexes would silently address the tail
    if index < 0 or index >= len(items):
        raise IndexError(f"index {index} out of range for {len(items)} items")
    return items[index]
