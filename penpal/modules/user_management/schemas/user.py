from typing import Optional, List
from datetime import date, datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"

class UserSummary(BaseModel):
    """Minimal author/participant card embedded in other responses"""
    user_id: str
    name: str
    profile_picture: Optional[str] = None
    is_admin: bool = False
    is_supporter: bool = False

class ProfileSummary(UserSummary):
    gender: Optional[Gender] = None
    age: Optional[int] = None
    country: Optional[str] = None

class ProfileBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    country: str
    profile_picture: str
    about_me: str = ""
    spoken_languages: List[str] = []
    learning_languages: List[str] = []
    hobbies: List[str] = []
    gender_preference: bool = False

class ProfileCreate(ProfileBase):
    user_name: str = Field(..., min_length=3, max_length=30)
    gender: Gender
    birth_date: date

class ProfileUpdate(ProfileBase):
    pass

class UserInDBBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: Optional[str] = None
    user_name: Optional[str] = None
    name: str
    is_admin: bool
    is_supporter: bool
    created_at: datetime

class CurrentProfile(UserInDBBase):
    """The caller's own profile, with private discovery settings"""
    profile_picture_url: Optional[str] = None
    gender: Optional[Gender] = None
    birth_date: Optional[date] = None
    country: Optional[str] = None
    age: Optional[int] = None
    age_group: Optional[str] = None
    gender_preference: bool = False
    about_me: str = ""
    spoken_languages: List[str] = []
    learning_languages: List[str] = []
    hobbies: List[str] = []

class UserProfile(ProfileSummary):
    """Another user's profile as seen by the caller"""
    user_name: Optional[str] = None
    about_me: str = ""
    spoken_languages: List[str] = []
    learning_languages: List[str] = []
    hobbies: List[str] = []
    is_friend: bool = False
    has_pending_request: bool = False

class UsernameAvailability(BaseModel):
    user_name: str
    available: bool
