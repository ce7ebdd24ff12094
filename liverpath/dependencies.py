import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .application.ports.ai_provider import AIProvider
from .application.ports.record_store import RecordStore
from .application.ports.storage_repo import StorageRepository
from .application.services.account_service import AccountDirectory, SessionContext
from .application.services.analysis_service import AnalysisService
from .application.services.history_service import HistoryManager
from .application.services.record_repository import RecordRepository
from .core.config import Settings, settings as default_settings
from .schemas.auth.auth import Profile
from .utils import decode_session_token

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer(auto_error=False)


@dataclass
class Services:
    store: RecordStore
    accounts: AccountDirectory
    history: HistoryManager
    analysis: AnalysisService


def build_services(
    store: RecordStore,
    ai_provider: AIProvider,
    storage_repo: StorageRepository,
    auto_provision: Optional[bool] = None,
) -> Services:
    from .infrastructure.audit.std_logger import StdAuditLogger

    records = RecordRepository(store)
    history = HistoryManager(records)
    accounts = AccountDirectory(
        records,
        audit=StdAuditLogger(),
        auto_provision=default_settings.AUTO_PROVISION_UNKNOWN_LOGIN if auto_provision is None else auto_provision,
    )
    analysis = AnalysisService(history=history, ai_provider=ai_provider, storage_repo=storage_repo)
    return Services(store=store, accounts=accounts, history=history, analysis=analysis)


def build_default_services(cfg: Settings = default_settings) -> Services:
    from .infrastructure.ai.gemini_provider import GeminiProvider
    from .infrastructure.storage.local_storage import LocalStorageRepository

    if cfg.STORE_BACKEND == "memory":
        from .infrastructure.persistence.memory.memory_record_store import InMemoryRecordStore
        store = InMemoryRecordStore(latency_seconds=cfg.store_latency_seconds)
    else:
        from .database import engine
        from .infrastructure.persistence.sqlalchemy.repositories.record_store_sql import SqlRecordStore
        store = SqlRecordStore(engine, latency_seconds=cfg.store_latency_seconds)
    return build_services(store, GeminiProvider(), LocalStorageRepository())


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_session_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(oauth2_scheme),
) -> SessionContext:
    token = credentials.credentials if credentials and credentials.credentials else request.cookies.get("access_token")
    session_id = decode_session_token(token)
    if not session_id:
        logger.warning("Session token missing, invalid or expired")
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return SessionContext(session_id=session_id)


async def get_current_profile(
    session: SessionContext = Depends(get_session_context),
    services: Services = Depends(get_services),
) -> Profile:
    profile = await services.accounts.current_session(session)
    if profile is None:
        raise HTTPException(status_code=401, detail="Session has ended. Please log in again.")
    return profile
