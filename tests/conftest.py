"""
Shared builders for analysis records and wired-up services.
"""

import io
from datetime import datetime, timedelta, timezone

import pytest
from PIL import Image

from liverpath.application.services.account_service import AccountDirectory
from liverpath.application.services.history_service import HistoryManager
from liverpath.application.services.record_repository import RecordRepository
from liverpath.infrastructure.persistence.memory.memory_record_store import InMemoryRecordStore
from liverpath.schemas.analysis.analysis import AnalysisResult, Finding, HistoryRecord

BASE_DATE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_result(diagnosis: str = "NASH") -> AnalysisResult:
    return AnalysisResult(
        overall_impression="Moderate macrovesicular steatosis with lobular inflammation.",
        key_findings=[
            Finding(finding="Steatosis", description="Macrovesicular, ~40% of hepatocytes, zone 3 predominant."),
            Finding(finding="Ballooning", description="Scattered ballooned hepatocytes with Mallory-Denk bodies."),
        ],
        differential_diagnosis=diagnosis,
        recommendations=["Trichrome stain to stage fibrosis", "Correlate with alcohol history"],
    )


def make_record(record_id: str = "rec-1", minutes: int = 0, diagnosis: str = "NASH") -> HistoryRecord:
    return HistoryRecord(
        id=record_id,
        date=BASE_DATE + timedelta(minutes=minutes),
        image_reference=f"uploads/slides/{record_id}.png",
        result=make_result(diagnosis),
    )


def png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 120, 140)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def records(store):
    return RecordRepository(store)


@pytest.fixture
def history(records):
    return HistoryManager(records)


@pytest.fixture
def accounts(records):
    return AccountDirectory(records)
