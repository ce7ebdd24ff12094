from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol


class RecordKind(str, Enum):
    ACCOUNT = "account"
    HISTORY = "history"
    SESSION = "session"

    @property
    def default(self) -> Optional[str]:
        """Raw value returned for a key that was never written."""
        return "[]" if self is RecordKind.HISTORY else None


@dataclass(frozen=True)
class RecordKey:
    owner: str
    kind: RecordKind

    def storage_key(self) -> str:
        return f"{self.kind.value}:{self.owner}"


class RecordStore(Protocol):
    async def read(self, key: RecordKey) -> Optional[str]:
        ...

    async def write(self, key: RecordKey, value: str) -> None:
        ...

    async def delete(self, key: RecordKey) -> None:
        ...
