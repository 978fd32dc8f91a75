from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from penpal.db.session import get_db
from penpal.deps import get_current_user, get_current_user_id
from penpal.modules.user_management.models.user import User
from penpal.modules.user_management.schemas.user import (
    CurrentProfile, ProfileCreate, ProfileUpdate, UserProfile, UsernameAvailability,
)
from penpal.modules.user_management.services.user import (
    check_username_availability,
    create_profile,
    delete_user_account,
    get_current_profile,
    get_user_profile,
    update_last_active,
    update_profile,
)

router = APIRouter()

@router.get("/username-availability/{user_name}", response_model=UsernameAvailability)
def username_availability(
    *,
    db: Session = Depends(get_db),
    user_name: str,
) -> Any:
    return check_username_availability(db, user_name)

@router.post("/me", response_model=CurrentProfile)
def create_my_profile(
    *,
    db: Session = Depends(get_db),
    profile_in: ProfileCreate,
    current_user: User = Depends(get_current_user),
) -> Any:
    """Complete sign up"""
    create_profile(db, current_user.id, profile_in)
    return get_current_profile(db, current_user.id)

@router.get("/me", response_model=CurrentProfile)
def read_user_me(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get current user"""
    return get_current_profile(db, current_user.id)

@router.put("/me", response_model=CurrentProfile)
def update_user_me(
    *,
    db: Session = Depends(get_db),
    profile_in: ProfileUpdate,
    current_user: User = Depends(get_current_user),
) -> Any:
    """Update current user"""
    update_profile(db, current_user.id, profile_in)
    return get_current_profile(db, current_user.id)

@router.put("/me/last-active", response_model=Dict[str, str])
def touch_last_active(
    db: Session = Depends(get_db),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    update_last_active(db, current_user_id)
    return {"message": "Last active updated"}

@router.delete("/me", response_model=Dict[str, Any])
def delete_user_me(
    db: Session = Depends(get_db),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    removed = delete_user_account(db, current_user_id)
    return {"message": "Account deleted", "removed": removed}

@router.get("/{user_id}", response_model=UserProfile)
def read_user_profile(
    *,
    db: Session = Depends(get_db),
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_user_profile(db, current_user_id, user_id)
