"""
Email one-time-code sign in.

1. ``request_sign_in_code`` stores a hashed 8 digit code for the email's
   account and hands the client a verifier token. The code goes out by email.
2. ``verify_sign_in_code`` needs the code and the verifier. It consumes the
   code, opens a session and returns an access token plus a refresh token.
3. ``refresh_session`` rotates the refresh token, ``sign_out`` ends the session.

Codes, verifier secrets and refresh tokens are only ever stored as bcrypt hashes.
Client-facing tokens are ``"<row id>.<secret>"`` so the row can be found
without scanning hashes.
"""
from datetime import timedelta
from typing import Optional, Tuple
import uuid
import logging

from sqlalchemy.orm import Session

from penpal.core.clock import utc_now
from penpal.core.config import settings
from penpal.core.errors import Unauthenticated
from penpal.core.security import (
    create_access_token, generate_refresh_token, generate_sign_in_code, hash_secret, verify_secret,
)
from penpal.modules.auth.models.auth import (
    AuthAccount, AuthRefreshToken, AuthSession, AuthVerificationCode, AuthVerifier,
)
from penpal.modules.auth.schemas.auth import TokenPair, normalize_email
from penpal.modules.user_management.models.user import User

logger = logging.getLogger(__name__)

EMAIL_PROVIDER = "email"

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Get user by email"""
    return db.query(User).filter(User.email == normalize_email(email)).first()

def get_email_account(db: Session, email: str) -> Optional[AuthAccount]:
    return db.query(AuthAccount).filter(
        AuthAccount.provider == EMAIL_PROVIDER,
        AuthAccount.provider_account_id == normalize_email(email),
    ).first()

def _split_token(token: str) -> Tuple[str, str]:
    row_id, _, secret = (token or "").partition(".")
    if not row_id or not secret:
        raise Unauthenticated("Malformed token")
    return row_id, secret

def _get_or_create_account(db: Session, email: str) -> AuthAccount:
    account = get_email_account(db, email)
    if account:
        return account

    user = get_user_by_email(db, email)
    if not user:
        user = User(id=str(uuid.uuid4()), email=email, name="", is_active=True)
        db.add(user)
        logger.info(f"Created user {user.id} for new email sign in")

    account = AuthAccount(
        id=str(uuid.uuid4()),
        user_id=user.id,
        provider=EMAIL_PROVIDER,
        provider_account_id=email,
    )
    db.add(account)
    return account

def request_sign_in_code(db: Session, email: str) -> Tuple[str, str]:
    """Issue a fresh code for the email. Returns (code, verifier); only the verifier goes to the client."""
    email = normalize_email(email)
    account = _get_or_create_account(db, email)

    # A new code invalidates the previous ones
    db.query(AuthVerificationCode).filter(
        AuthVerificationCode.account_id == account.id
    ).delete(synchronize_session=False)

    code = generate_sign_in_code()
    db.add(AuthVerificationCode(
        id=str(uuid.uuid4()),
        account_id=account.id,
        code_hash=hash_secret(code),
        expires_at=utc_now() + timedelta(minutes=settings.SIGN_IN_CODE_EXPIRE_MINUTES),
    ))

    verifier_secret = generate_refresh_token()
    verifier = AuthVerifier(id=str(uuid.uuid4()), account_id=account.id, signature=hash_secret(verifier_secret))
    db.add(verifier)
    db.commit()

    # Email delivery is handled outside this service
    logger.info(f"Sign-in code issued for account {account.id}")
    return code, f"{verifier.id}.{verifier_secret}"

def _issue_tokens(db: Session, session: AuthSession) -> TokenPair:
    secret = generate_refresh_token()
    token = AuthRefreshToken(
        id=str(uuid.uuid4()),
        session_id=session.id,
        token_hash=hash_secret(secret),
        expires_at=session.expires_at,
    )
    db.add(token)
    return TokenPair(
        access_token=create_access_token(session.user_id),
        refresh_token=f"{session.id}.{secret}",
    )

def verify_sign_in_code(db: Session, email: str, code: str, verifier: str) -> TokenPair:
    verifier_id, verifier_secret = _split_token(verifier)
    verifier_row = db.query(AuthVerifier).filter(AuthVerifier.id == verifier_id).first()
    if not verifier_row or verifier_row.session_id or not verify_secret(verifier_secret, verifier_row.signature):
        raise Unauthenticated("Invalid verifier")

    account = get_email_account(db, email)
    if not account:
        raise Unauthenticated("Invalid or expired code")
    # A verifier only completes the sign in it was issued for
    if verifier_row.account_id != account.id:
        logger.warning(f"Verifier {verifier_row.id} presented for another account {account.id}")
        raise Unauthenticated("Invalid verifier")

    now = utc_now()
    codes = db.query(AuthVerificationCode).filter(
        AuthVerificationCode.account_id == account.id,
        AuthVerificationCode.expires_at > now,
    ).all()
    if not any(verify_secret(code or "", c.code_hash) for c in codes):
        logger.warning(f"Failed sign-in attempt for account {account.id}")
        raise Unauthenticated("Invalid or expired code")

    user = db.query(User).filter(User.id == account.user_id).first()
    if not user or not user.is_active:
        raise Unauthenticated("Account is disabled")

    db.query(AuthVerificationCode).filter(
        AuthVerificationCode.account_id == account.id
    ).delete(synchronize_session=False)

    session = AuthSession(
        id=str(uuid.uuid4()),
        user_id=user.id,
        expires_at=now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
    db.add(session)
    verifier_row.session_id = session.id
    tokens = _issue_tokens(db, session)
    db.commit()
    logger.info(f"User {user.id} signed in, session {session.id}")
    return tokens

def _match_refresh_token(db: Session, refresh_token: str) -> Tuple[AuthSession, AuthRefreshToken]:
    session_id, secret = _split_token(refresh_token)
    session = db.query(AuthSession).filter(AuthSession.id == session_id).first()
    if not session or session.expires_at <= utc_now():
        raise Unauthenticated("Session expired")

    for token in db.query(AuthRefreshToken).filter(AuthRefreshToken.session_id == session.id).all():
        if verify_secret(secret, token.token_hash):
            return session, token
    raise Unauthenticated("Invalid refresh token")

def refresh_session(db: Session, refresh_token: str) -> TokenPair:
    """Trade a refresh token for a new pair. The old refresh token stops working."""
    session, token = _match_refresh_token(db, refresh_token)
    db.delete(token)
    session.expires_at = utc_now() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    tokens = _issue_tokens(db, session)
    db.commit()
    return tokens

def sign_out(db: Session, user_id: str, refresh_token: str) -> None:
    session, _ = _match_refresh_token(db, refresh_token)
    if session.user_id != user_id:
        raise Unauthenticated("Session does not belong to this user")

    db.query(AuthRefreshToken).filter(AuthRefreshToken.session_id == session.id).delete(synchronize_session=False)
    db.query(AuthVerifier).filter(AuthVerifier.session_id == session.id).delete(synchronize_session=False)
    db.delete(session)
    db.commit()
    logger.info(f"User {user_id} signed out of session {session.id}")
