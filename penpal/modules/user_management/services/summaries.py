"""
Read-only user lookups shared by every module that embeds a user card in its
responses. Kept free of imports from other services so any module can use it.
"""
from datetime import date
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from penpal.core.storage import blob_storage
from penpal.modules.user_management.models.user import User
from penpal.modules.user_management.schemas.user import UserSummary, ProfileSummary

def get_user(db: Session, user_id: str) -> Optional[User]:
    """Get user by ID"""
    return db.query(User).filter(User.id == user_id).first()

def get_users_by_ids(db: Session, user_ids: Iterable[str]) -> Dict[str, User]:
    """Batch lookup keyed by id; missing users are simply absent"""
    ids = set(user_ids)
    if not ids:
        return {}
    return {user.id: user for user in db.query(User).filter(User.id.in_(ids)).all()}

def calculate_age(birth_date: Optional[date], today: Optional[date] = None) -> Optional[int]:
    if birth_date is None:
        return None
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age

def get_age_group(birth_date: date) -> str:
    return "13-17" if calculate_age(birth_date) < 18 else "18-100"

def to_user_summary(user: User) -> UserSummary:
    return UserSummary(
        user_id=user.id,
        name=user.name or "",
        profile_picture=blob_storage.get_url(user.profile_picture),
        is_admin=bool(user.is_admin),
        is_supporter=bool(user.is_supporter),
    )

def to_profile_summary(user: User) -> ProfileSummary:
    return ProfileSummary(
        **to_user_summary(user).model_dump(),
        gender=user.gender,
        age=calculate_age(user.birth_date),
        country=user.country,
    )
