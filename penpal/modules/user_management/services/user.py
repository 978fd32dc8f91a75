from datetime import date
from typing import Dict, Optional
import re
import uuid
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from penpal.core.clock import utc_now
from penpal.core.config import settings
from penpal.core.errors import Conflict, NotAuthorized, NotFound, SelfReferenceError, ValidationFailed
from penpal.core.storage import blob_storage
from penpal.modules.friendships.services.friendship import are_friends, has_pending_request
from penpal.modules.moderation.services.blocking import is_blocked_either_way
from penpal.modules.moderation.services.cascade import delete_account
from penpal.modules.posts.services.collection import create_collection
from penpal.modules.user_management.models.user import Profile, User, UserInformation
from penpal.modules.user_management.schemas.user import (
    CurrentProfile, ProfileCreate, ProfileUpdate, UserProfile, UsernameAvailability,
)
from penpal.modules.user_management.services.summaries import (
    calculate_age, get_age_group, get_user, to_profile_summary,
)

logger = logging.getLogger(__name__)

USER_NAME_PATTERN = re.compile(r"^[a-z0-9_.]{3,30}$")

def get_user_by_username(db: Session, user_name: str) -> Optional[User]:
    """Get user by username"""
    return db.query(User).filter(User.user_name == user_name).first()

def _normalize_user_name(user_name: str) -> str:
    user_name = (user_name or "").strip().lower()
    if not USER_NAME_PATTERN.match(user_name):
        raise ValidationFailed("User name must be 3 to 30 characters of letters, digits, '_' or '.'")
    return user_name

def _require_user(db: Session, user_id: str) -> User:
    user = get_user(db, user_id)
    if not user:
        raise NotFound("User not found")
    return user

def check_username_availability(db: Session, user_name: str) -> UsernameAvailability:
    try:
        normalized = _normalize_user_name(user_name)
    except ValidationFailed:
        return UsernameAvailability(user_name=user_name, available=False)
    return UsernameAvailability(user_name=normalized, available=get_user_by_username(db, normalized) is None)

def create_profile(db: Session, user_id: str, profile_in: ProfileCreate, today: Optional[date] = None) -> User:
    """
    Complete sign up: public profile, discovery information and the
    default collection, committed together.
    """
    user = _require_user(db, user_id)
    if user.user_name:
        raise Conflict("Profile already exists")

    age = calculate_age(profile_in.birth_date, today)
    if age is None or age < settings.MINIMUM_AGE:
        raise ValidationFailed(f"You must be at least {settings.MINIMUM_AGE} years old")

    user_name = _normalize_user_name(profile_in.user_name)
    if get_user_by_username(db, user_name):
        raise Conflict("User name is already taken")

    user.user_name = user_name
    user.name = profile_in.name.strip()
    user.country = profile_in.country
    user.profile_picture = profile_in.profile_picture
    user.gender = profile_in.gender.value
    user.birth_date = profile_in.birth_date

    db.add(Profile(
        id=str(uuid.uuid4()),
        user_id=user.id,
        about_me=profile_in.about_me,
        spoken_languages=profile_in.spoken_languages,
        learning_languages=profile_in.learning_languages,
        hobbies=profile_in.hobbies,
    ))
    db.add(UserInformation(
        id=str(uuid.uuid4()),
        user_id=user.id,
        gender_preference=profile_in.gender_preference,
        age_group=get_age_group(profile_in.birth_date),
        last_active=utc_now(),
    ))
    create_collection(db, user.id, settings.DEFAULT_COLLECTION_TITLE, commit=False)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("User name is already taken")
    db.refresh(user)
    logger.info(f"Created profile for user {user.id}")
    return user

def update_profile(db: Session, user_id: str, profile_in: ProfileUpdate) -> User:
    user = _require_user(db, user_id)
    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    information = db.query(UserInformation).filter(UserInformation.user_id == user_id).first()
    if not profile or not information:
        raise NotFound("Profile not found")

    if user.profile_picture and user.profile_picture != profile_in.profile_picture:
        blob_storage.delete_object(user.profile_picture)

    user.name = profile_in.name.strip()
    user.country = profile_in.country
    user.profile_picture = profile_in.profile_picture

    profile.about_me = profile_in.about_me
    profile.spoken_languages = profile_in.spoken_languages
    profile.learning_languages = profile_in.learning_languages
    profile.hobbies = profile_in.hobbies
    information.gender_preference = profile_in.gender_preference

    db.commit()
    db.refresh(user)
    return user

def get_current_profile(db: Session, user_id: str) -> CurrentProfile:
    user = _require_user(db, user_id)
    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    information = db.query(UserInformation).filter(UserInformation.user_id == user_id).first()

    extra: Dict = {}
    if profile:
        extra.update(
            about_me=profile.about_me or "",
            spoken_languages=profile.spoken_languages or [],
            learning_languages=profile.learning_languages or [],
            hobbies=profile.hobbies or [],
        )
    if information:
        extra.update(age_group=information.age_group, gender_preference=bool(information.gender_preference))

    return CurrentProfile(
        id=user.id,
        email=user.email,
        user_name=user.user_name,
        name=user.name or "",
        is_admin=bool(user.is_admin),
        is_supporter=bool(user.is_supporter),
        created_at=user.created_at,
        profile_picture_url=blob_storage.get_url(user.profile_picture),
        gender=user.gender,
        birth_date=user.birth_date,
        country=user.country,
        age=calculate_age(user.birth_date),
        **extra,
    )

def get_user_profile(db: Session, viewer_id: str, user_id: str) -> UserProfile:
    """Another user's public profile with the viewer's relationship to them"""
    if viewer_id == user_id:
        raise SelfReferenceError("Use the current profile endpoint for your own profile")
    user = _require_user(db, user_id)
    if is_blocked_either_way(db, viewer_id, user_id):
        raise NotAuthorized("This profile is not available")

    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    return UserProfile(
        **to_profile_summary(user).model_dump(),
        user_name=user.user_name,
        about_me=profile.about_me if profile else "",
        spoken_languages=profile.spoken_languages if profile else [],
        learning_languages=profile.learning_languages if profile else [],
        hobbies=profile.hobbies if profile else [],
        is_friend=are_friends(db, viewer_id, user_id),
        has_pending_request=has_pending_request(db, viewer_id, user_id),
    )

def update_last_active(db: Session, user_id: str) -> None:
    information = db.query(UserInformation).filter(UserInformation.user_id == user_id).first()
    if not information:
        return
    information.last_active = utc_now()
    db.commit()

def delete_user_account(db: Session, user_id: str) -> Dict[str, int]:
    """Delete the caller's account and everything attached to it"""
    logger.info(f"User {user_id} requested account deletion")
    return delete_account(db, user_id)
