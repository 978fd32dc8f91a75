from sqlalchemy import Boolean, Column, String, DateTime, Date, Text, JSON

from penpal.core.clock import utc_now
from penpal.db.session import Base

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=True)
    user_name = Column(String, unique=True, index=True, nullable=True)
    name = Column(String, default="")
    profile_picture = Column(String, nullable=True)  # Storage key, resolved to a URL on read
    gender = Column(String, nullable=True)  # male, female, other
    birth_date = Column(Date, nullable=True)
    country = Column(String, nullable=True)
    is_admin = Column(Boolean, default=False)
    is_supporter = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utc_now, index=True)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, unique=True, index=True)
    about_me = Column(Text, default="")
    spoken_languages = Column(JSON, default=list)
    learning_languages = Column(JSON, default=list)
    hobbies = Column(JSON, default=list)
    created_at = Column(DateTime, default=utc_now)

class UserInformation(Base):
    """Discovery data kept apart from the public profile."""
    __tablename__ = "user_information"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, unique=True, index=True)
    gender_preference = Column(Boolean, default=False)
    age_group = Column(String)  # 13-17, 18-100
    last_active = Column(DateTime, default=utc_now, index=True)
    created_at = Column(DateTime, default=utc_now)
