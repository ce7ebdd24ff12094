import logging

from fastapi import APIRouter, Depends

from ..application.services.account_service import SessionContext
from ..dependencies import Services, get_current_profile, get_services, get_session_context
from ..exceptions import InvalidCredentialsError, create_success_response
from ..schemas.auth.auth import (
    AuthResponse,
    LoginRequest,
    Profile,
    ProfileFields,
    ProfileUpdateRequest,
    SignupRequest,
)
from ..utils import create_session_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(body: SignupRequest, services: Services = Depends(get_services)):
    session = SessionContext()
    fields = ProfileFields(**body.model_dump(include={"name", "title", "hospital", "qualifications"}))
    profile = await services.accounts.create(fields, body.email, body.password, session)
    return AuthResponse(access_token=create_session_token(session.session_id), profile=profile)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, services: Services = Depends(get_services)):
    session = SessionContext()
    profile = await services.accounts.authenticate(body.email, body.password, session)
    if profile is None:
        raise InvalidCredentialsError("Invalid email or password.")
    return AuthResponse(access_token=create_session_token(session.session_id), profile=profile)


@router.post("/logout")
async def logout(
    session: SessionContext = Depends(get_session_context),
    services: Services = Depends(get_services),
):
    await services.accounts.current_session(session)
    await services.accounts.end_session(session)
    return create_success_response({"message": "Logged out"})


@router.get("/me", response_model=Profile)
async def me(profile: Profile = Depends(get_current_profile)):
    return profile


@router.put("/me", response_model=Profile)
async def update_me(
    body: ProfileUpdateRequest,
    profile: Profile = Depends(get_current_profile),
    services: Services = Depends(get_services),
):
    changes = body.model_dump(exclude_none=True)
    return await services.accounts.update(profile.model_copy(update=changes))
