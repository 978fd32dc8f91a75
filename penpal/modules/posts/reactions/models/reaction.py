from sqlalchemy import Column, String, DateTime, UniqueConstraint

from penpal.core.clock import utc_now
from penpal.db.session import Base

class Reaction(Base):
    __tablename__ = "reactions"

    id = Column(String, primary_key=True, index=True)
    emoji = Column(String, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    post_id = Column(String, index=True, nullable=False)
    created_at = Column(DateTime, default=utc_now)

    __table_args__ = (
        UniqueConstraint('user_id', 'post_id', name='one_reaction_per_user_post'),
    )
