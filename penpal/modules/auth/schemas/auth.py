from typing import Optional
from pydantic import BaseModel, EmailStr, field_validator

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class TokenPair(Token):
    refresh_token: str

class TokenPayload(BaseModel):
    sub: Optional[str] = None

def normalize_email(email: Optional[str]) -> Optional[str]:
    """Normalize email to lowercase."""
    return email.strip().lower() if email else None

class SignInCodeRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return normalize_email(v)

class SignInCodeSent(BaseModel):
    verifier: str

class SignInCodeVerify(SignInCodeRequest):
    code: str
    verifier: str

class RefreshRequest(BaseModel):
    refresh_token: str

class SignOutRequest(BaseModel):
    refresh_token: str
