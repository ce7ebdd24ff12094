# liverpath/models.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredValue(SQLModel, table=True):
    __tablename__ = "stored_values"

    key: str = Field(primary_key=True, max_length=320)
    value: str
    updated_at: datetime = Field(default_factory=_utcnow)
