"""
Typed access to the raw record store.

Accounts, histories and session markers are stored as JSON text under
``RecordKey(owner, kind)``.  History reads pass through ``migrate_history``
first, so records written by older releases (which called the differential
diagnosis ``potentialDiagnosis``) come back in the current shape and are
persisted that way.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..ports.record_store import RecordKey, RecordKind, RecordStore
from ...exceptions import CorruptRecordError
from ...schemas.analysis.analysis import HistoryRecord
from ...schemas.auth.auth import StoredAccount

logger = logging.getLogger(__name__)

LEGACY_DIAGNOSIS_KEY = "potentialDiagnosis"
DIAGNOSIS_KEY = "differentialDiagnosis"


def migrate_history(items: List[Any]) -> bool:
    """
    Rename ``potentialDiagnosis`` to ``differentialDiagnosis`` in place.

    Returns True when at least one item changed.  A second pass over the
    same list changes nothing.
    """
    changed = False
    for item in items:
        if not isinstance(item, dict):
            continue
        result = item.get("result")
        if not isinstance(result, dict):
            continue
        if LEGACY_DIAGNOSIS_KEY in result and DIAGNOSIS_KEY not in result:
            result[DIAGNOSIS_KEY] = result.pop(LEGACY_DIAGNOSIS_KEY)
            changed = True
    return changed


def dump_history(records: List[HistoryRecord], previous: Optional["StoredHistory"] = None) -> str:
    items: List[Any] = []
    for record in records:
        original = previous.originals.get(record.id) if previous is not None else None
        if original is not None and original[1].model_dump() == record.model_dump():
            items.append(original[0])
        else:
            items.append(record.model_dump(mode="json", by_alias=True))
    if previous is not None:
        items.extend(previous.unreadable)
    return json.dumps(items)


@dataclass
class StoredHistory:
    """
    One account's history as found in the store.

    ``unreadable`` keeps the raw entries that failed validation and
    ``originals`` maps each record id to the raw entry it was parsed from.
    Writing through ``RecordRepository.write_history`` with this as
    ``previous`` stores untouched entries back exactly as they were read.
    """
    records: List[HistoryRecord] = field(default_factory=list)
    unreadable: List[Any] = field(default_factory=list)
    originals: Dict[str, Tuple[Any, HistoryRecord]] = field(default_factory=dict)
    corrupt: bool = False


@dataclass
class RecordRepository:
    store: RecordStore

    # History

    async def load_history(self, email: str) -> StoredHistory:
        key = RecordKey(email, RecordKind.HISTORY)
        raw = await self.store.read(key)
        try:
            items = json.loads(raw) if raw else []
        except json.JSONDecodeError:
            logger.error(f"Stored history for {email} is not valid JSON; treating as empty")
            return StoredHistory(corrupt=True)
        if not isinstance(items, list):
            logger.error(f"Stored history for {email} is not a list; treating as empty")
            return StoredHistory(corrupt=True)

        if migrate_history(items):
            logger.info(f"Migrated legacy history records for {email}")
            await self.store.write(key, json.dumps(items))

        history = StoredHistory()
        for item in items:
            try:
                record = HistoryRecord.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Skipping unreadable history entry for {email}: {e.error_count()} errors")
                history.unreadable.append(item)
                continue
            history.records.append(record)
            history.originals.setdefault(record.id, (item, record))
        return history

    async def read_history(self, email: str) -> List[HistoryRecord]:
        return (await self.load_history(email)).records

    async def write_history(
        self,
        email: str,
        records: List[HistoryRecord],
        previous: Optional[StoredHistory] = None,
    ) -> None:
        if previous is not None and previous.corrupt:
            raise CorruptRecordError(
                f"Stored history for {email} is unreadable; clear it before saving new analyses"
            )
        await self.store.write(RecordKey(email, RecordKind.HISTORY), dump_history(records, previous))

    async def delete_history(self, email: str) -> None:
        await self.store.delete(RecordKey(email, RecordKind.HISTORY))

    # Accounts

    async def read_account(self, email: str) -> Optional[StoredAccount]:
        raw = await self.store.read(RecordKey(email, RecordKind.ACCOUNT))
        if not raw:
            return None
        try:
            return StoredAccount.model_validate_json(raw)
        except ValidationError:
            logger.error(f"Stored account record for {email} is unreadable")
            raise CorruptRecordError(f"Account record for {email} is unreadable") from None
        try:
            return StoredAccount.model_validate_json(raw)
        except ValidationError:
            logger.error(f"Stored account record for {email} is unreadable")
            return None

    async def write_account(self, account: StoredAccount) -> None:
        await self.store.write(RecordKey(account.email, RecordKind.ACCOUNT), account.model_dump_json())

    # Session markers

    async def read_session(self, session_id: str) -> Optional[str]:
        return await self.store.read(RecordKey(session_id, RecordKind.SESSION))

    async def write_session(self, session_id: str, email: str) -> None:
        await self.store.write(RecordKey(session_id, RecordKind.SESSION), email)

    async def delete_session(self, session_id: str) -> None:
        await self.store.delete(RecordKey(session_id, RecordKind.SESSION))
