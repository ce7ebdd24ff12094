"""
Account directory: profiles, credentials and session markers.

Password storage
----------------
Passwords are hashed with passlib's bcrypt scheme and the resulting hash string
is kept inside the stored account.

Sessions
--------
Every authorized call carries a ``SessionContext``.  Its ``session_id``
addresses one session marker in the record store; the marker holds the email
of the signed-in account.  Logging in or signing up sets the marker, logging
out deletes it.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional

from passlib.context import CryptContext

from .record_repository import RecordRepository
from ..ports.audit_logger import AuditLogger
from ...exceptions import ConflictError, NotFoundError
from ...schemas.auth.auth import (
    DEFAULT_AVATAR,
    Profile,
    ProfileFields,
    StoredAccount,
    normalize_email,
)

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Account created for an unknown email when auto-provisioning is enabled
DEFAULT_PROVISIONED_FIELDS = ProfileFields(
    name="Dr. Alex Doe",
    title="Pathologist",
    hospital="General Hospital",
    qualifications="MD, FRCPath",
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Not a hash passlib recognises
        return False


@dataclass
class SessionContext:
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    email: Optional[str] = None


@dataclass
class AccountDirectory:
    records: RecordRepository
    audit: Optional[AuditLogger] = None
    auto_provision: bool = False

    def _audit(self, action: str, email: str, success: bool = True, session: Optional[SessionContext] = None) -> None:
        if self.audit is not None:
            self.audit.log(action, email, success=success, session_id=session.session_id if session else None)

    async def _start_session(self, session: SessionContext, email: str) -> None:
        await self.records.write_session(session.session_id, email)
        session.email = email

    async def create(self, fields: ProfileFields, email: str, password: str, session: SessionContext) -> Profile:
        email = normalize_email(email)
        if await self.records.read_account(email) is not None:
            self._audit("signup", email, success=False, session=session)
            raise ConflictError("An account with this email already exists.")

        account = StoredAccount(
            **fields.model_dump(),
            email=email,
            avatar=DEFAULT_AVATAR,
            password_hash=hash_password(password),
        )
        await self.records.write_account(account)
        await self._start_session(session, email)
        self._audit("signup", email, session=session)
        logger.info(f"Created account {email}")
        return account.to_profile()

    async def authenticate(self, email: str, password: str, session: SessionContext) -> Optional[Profile]:
        email = normalize_email(email)
        account = await self.records.read_account(email)

        if account is None:
            if not self.auto_provision:
                logger.debug(f"authenticate: unknown account '{email}'")
                self._audit("login", email, success=False, session=session)
                return None
            logger.warning(f"Auto-provisioning default account for unknown login '{email}'")
            account = StoredAccount(
                **DEFAULT_PROVISIONED_FIELDS.model_dump(),
                email=email,
                password_hash=hash_password(password),
            )
            await self.records.write_account(account)
        elif not verify_password(password, account.password_hash):
            logger.debug(f"authenticate: wrong password for '{email}'")
            self._audit("login", email, success=False, session=session)
            return None

        await self._start_session(session, email)
        self._audit("login", email, session=session)
        return account.to_profile()

    async def current_session(self, session: SessionContext) -> Optional[Profile]:
        email = await self.records.read_session(session.session_id)
        if not email:
            session.email = None
            return None
        account = await self.records.read_account(email)
        if account is None:
            logger.info(f"Session {session.session_id} points at missing account {email}")
            session.email = None
            return None
        session.email = email
        return account.to_profile()

    async def update(self, profile: Profile) -> Profile:
        account = await self.records.read_account(profile.email)
        if account is None:
            raise NotFoundError("User not found for profile update.")
        updated = account.model_copy(update=profile.model_dump(exclude={"email"}))
        await self.records.write_account(updated)
        self._audit("profile_update", profile.email)
        return updated.to_profile()

    async def end_session(self, session: SessionContext) -> None:
        if session.email:
            self._audit("logout", session.email, session=session)
        await self.records.delete_session(session.session_id)
        session.email = None
