from sqlalchemy import Column, String, DateTime, Text

from penpal.core.clock import utc_now
from penpal.db.session import Base

class Comment(Base):
    __tablename__ = "comments"

    id = Column(String, primary_key=True, index=True)
    content = Column(Text, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    post_id = Column(String, index=True, nullable=False)
    reply_parent_id = Column(String, index=True, nullable=True)
    created_at = Column(DateTime, default=utc_now)
