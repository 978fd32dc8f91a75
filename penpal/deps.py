from typing import Optional

from fastapi import Depends, Query
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from penpal.core import security
from penpal.core.config import settings
from penpal.core.errors import Unauthenticated
from penpal.core.pagination import PaginationOpts
from penpal.db.session import get_db
from penpal.modules.user_management.models.user import User
from penpal.modules.user_management.services.summaries import get_user

# Missing tokens are reported through Unauthenticated rather than FastAPI's own 401
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/sign-in/verify", auto_error=False)

def get_current_user_id(token: Optional[str] = Depends(oauth2_scheme)) -> str:
    """
    Dependency resolving the bearer token to the caller's user id
    """
    if not token:
        raise Unauthenticated("Not authenticated")
    user_id = security.verify_access_token(token)
    if not user_id:
        raise Unauthenticated("Could not validate credentials")
    return user_id

def get_current_user(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> User:
    """
    Dependency for getting current authenticated user
    """
    user = get_user(db, user_id)
    if not user or not user.is_active:
        raise Unauthenticated("User not found or inactive")
    return user

def get_pagination(
    num_items: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    cursor: Optional[str] = Query(None),
) -> PaginationOpts:
    return PaginationOpts(num_items=num_items, cursor=cursor)
