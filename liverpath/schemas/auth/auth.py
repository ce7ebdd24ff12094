# liverpath/schemas/auth/auth.py
import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_AVATAR = (
    "data:image/svg+xml;utf8,"
    "<svg xmlns='http://www.w3.org/2000/svg' viewBox='0 0 24 24' fill='%2394a3b8'>"
    "<circle cx='12' cy='8' r='4'/><path d='M4 21a8 8 0 0 1 16 0z'/></svg>"
)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def check_email(v: str) -> str:
    v = normalize_email(v)
    if not _EMAIL_RE.match(v):
        raise ValueError("Invalid email address")
    return v


class ProfileFields(BaseModel):
    """Mutable display attributes of an account."""
    name: str = Field(..., min_length=1, max_length=100)
    title: str = Field("", max_length=100)
    hospital: str = Field("", max_length=200, description="Institution")
    qualifications: str = Field("", max_length=200, description="Credentials text, e.g. 'MD, FRCPath'")


class Profile(ProfileFields):
    email: str
    avatar: str = DEFAULT_AVATAR

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return check_email(v)


class StoredAccount(Profile):
    """Credential record. Never leaves the account directory."""
    password_hash: str

    def to_profile(self) -> Profile:
        return Profile(**self.model_dump(exclude={"password_hash"}))


class SignupRequest(ProfileFields):
    email: str
    password: str = Field(..., min_length=8)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        if not (re.search(r"[A-Z]", v) and re.search(r"[a-z]", v) and re.search(r"\d", v)):
            raise ValueError("Password must contain upper and lower case letters and a digit")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


class ProfileUpdateRequest(ProfileFields):
    avatar: Optional[str] = None


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    profile: Profile
