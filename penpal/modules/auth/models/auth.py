from sqlalchemy import Column, String, DateTime, UniqueConstraint

from penpal.core.clock import utc_now
from penpal.db.session import Base

# Sign-in provider records. Deleted last when an account goes away.

class AuthAccount(Base):
    __tablename__ = "auth_accounts"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    provider = Column(String, nullable=False)  # "email"
    provider_account_id = Column(String, nullable=False)
    created_at = Column(DateTime, default=utc_now)

    __table_args__ = (
        UniqueConstraint('provider', 'provider_account_id', name='unique_provider_account'),
    )

class AuthSession(Base):
    __tablename__ = "auth_sessions"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utc_now)

class AuthRefreshToken(Base):
    __tablename__ = "auth_refresh_tokens"

    id = Column(String, primary_key=True, index=True)
    session_id = Column(String, index=True, nullable=False)
    token_hash = Column(String, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utc_now)

class AuthVerificationCode(Base):
    __tablename__ = "auth_verification_codes"

    id = Column(String, primary_key=True, index=True)
    account_id = Column(String, index=True, nullable=False)
    code_hash = Column(String, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utc_now)

class AuthVerifier(Base):
    __tablename__ = "auth_verifiers"

    id = Column(String, primary_key=True, index=True)
    session_id = Column(String, index=True, nullable=True)
    account_id = Column(String, index=True, nullable=True)  # Account the code was issued for
    signature = Column(String, nullable=True)
    created_at = Column(DateTime, default=utc_now)
