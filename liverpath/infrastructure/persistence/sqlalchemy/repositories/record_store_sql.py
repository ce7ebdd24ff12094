import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from .....models import StoredValue
from .....application.ports.record_store import RecordKey, RecordStore
from .....exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)


class SqlRecordStore(RecordStore):
    def __init__(self, engine: Engine, latency_seconds: float = 0.0):
        self.engine = engine
        self.latency_seconds = latency_seconds

    async def read(self, key: RecordKey) -> Optional[str]:
        await asyncio.sleep(self.latency_seconds)
        try:
            with Session(self.engine) as session:
                row = session.get(StoredValue, key.storage_key())
                return row.value if row else key.kind.default
        except SQLAlchemyError as e:
            logger.error(f"Record store read failed for {key.kind.value}: {e}")
            raise StorageUnavailableError("Record store is unavailable") from e

    async def write(self, key: RecordKey, value: str) -> None:
        await asyncio.sleep(self.latency_seconds)
        try:
            with Session(self.engine) as session:
                row = session.get(StoredValue, key.storage_key())
                if row is None:
                    row = StoredValue(key=key.storage_key(), value=value)
                else:
                    row.value = value
                    row.updated_at = datetime.now(timezone.utc)
                session.add(row)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Record store write failed for {key.kind.value}: {e}")
            raise StorageUnavailableError("Record store is unavailable") from e

    async def delete(self, key: RecordKey) -> None:
        await asyncio.sleep(self.latency_seconds)
        try:
            with Session(self.engine) as session:
                row = session.get(StoredValue, key.storage_key())
                if row is not None:
                    session.delete(row)
                    session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Record store delete failed for {key.kind.value}: {e}")
            raise StorageUnavailableError("Record store is unavailable") from e
