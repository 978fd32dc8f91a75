from sqlalchemy import Column, String, DateTime, Text, Integer, JSON

from penpal.core.clock import utc_now
from penpal.db.session import Base

class Post(Base):
    __tablename__ = "posts"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    collection_id = Column(String, index=True, nullable=True)
    content = Column(Text, nullable=False)
    images = Column(JSON, default=list)  # Storage keys
    tags = Column(JSON, default=list)
    # Denormalized counters, maintained by penpal.modules.posts.services.counters
    comments_count = Column(Integer, default=0, nullable=False)
    reactions_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utc_now, index=True)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

class Collection(Base):
    __tablename__ = "collections"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    posts_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utc_now)
