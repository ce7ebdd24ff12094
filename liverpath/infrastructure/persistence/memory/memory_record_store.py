import asyncio
from typing import Dict, Optional

from ....application.ports.record_store import RecordKey, RecordStore


class InMemoryRecordStore(RecordStore):
    """Process-local store; contents vanish with the process."""

    def __init__(self, latency_seconds: float = 0.0) -> None:
        self.latency_seconds = latency_seconds
        self._data: Dict[str, str] = {}

    async def read(self, key: RecordKey) -> Optional[str]:
        await asyncio.sleep(self.latency_seconds)
        return self._data.get(key.storage_key(), key.kind.default)

    async def write(self, key: RecordKey, value: str) -> None:
        await asyncio.sleep(self.latency_seconds)
        self._data[key.storage_key()] = value

    async def delete(self, key: RecordKey) -> None:
        await asyncio.sleep(self.latency_seconds)
        self._data.pop(key.storage_key(), None)

    def raw(self, key: RecordKey) -> Optional[str]:
        """Peek at the stored text without latency."""
        return self._data.get(key.storage_key())
