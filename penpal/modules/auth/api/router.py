"""Authentication router for email one-time-code sign in"""
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from penpal.db.session import get_db
from penpal.deps import get_current_user
from penpal.modules.auth.schemas.auth import (
    RefreshRequest, SignInCodeRequest, SignInCodeSent, SignInCodeVerify, SignOutRequest, TokenPair,
)
from penpal.modules.auth.services.auth import (
    refresh_session, request_sign_in_code, sign_out, verify_sign_in_code,
)
from penpal.modules.user_management.models.user import User

router = APIRouter()

@router.post("/sign-in/code", response_model=SignInCodeSent)
def send_sign_in_code(
    *,
    db: Session = Depends(get_db),
    request_in: SignInCodeRequest,
) -> Any:
    """Email a one-time code. The returned verifier must accompany the code."""
    _, verifier = request_sign_in_code(db, request_in.email)
    return SignInCodeSent(verifier=verifier)

@router.post("/sign-in/verify", response_model=TokenPair)
def verify_code(
    *,
    db: Session = Depends(get_db),
    verify_in: SignInCodeVerify,
) -> Any:
    return verify_sign_in_code(db, verify_in.email, verify_in.code, verify_in.verifier)

@router.post("/refresh", response_model=TokenPair)
def refresh(
    *,
    db: Session = Depends(get_db),
    refresh_in: RefreshRequest,
) -> Any:
    return refresh_session(db, refresh_in.refresh_token)

@router.post("/sign-out", response_model=Dict[str, str])
def sign_out_session(
    *,
    db: Session = Depends(get_db),
    sign_out_in: SignOutRequest,
    current_user: User = Depends(get_current_user),
) -> Any:
    sign_out(db, current_user.id, sign_out_in.refresh_token)
    return {"message": "Signed out"}

@router.get("/validate-token", response_model=Dict[str, Any])
def validate_token(current_user: User = Depends(get_current_user)) -> Any:
    """Validate the current user's token and return user information"""
    return {
        "valid": True,
        "user_id": current_user.id,
        "user_name": current_user.user_name,
        "email": current_user.email,
        "has_profile": current_user.user_name is not None,
    }
