from sqlalchemy import Column, String, DateTime, Text, UniqueConstraint

from penpal.core.clock import utc_now
from penpal.db.session import Base

# Directional block. Visibility checks look both ways.
class BlockedUser(Base):
    __tablename__ = "blocked_users"

    id = Column(String, primary_key=True, index=True)
    blocker_user_id = Column(String, index=True, nullable=False)
    blocked_user_id = Column(String, index=True, nullable=False)
    created_at = Column(DateTime, default=utc_now)

    __table_args__ = (
        UniqueConstraint('blocker_user_id', 'blocked_user_id', name='unique_block'),
    )

class ReportedUser(Base):
    __tablename__ = "reported_users"

    id = Column(String, primary_key=True, index=True)
    reported_user_id = Column(String, index=True, nullable=False)
    reporter_id = Column(String, index=True, nullable=False)
    report_type = Column(String, nullable=False)
    report_reason = Column(Text, nullable=False)
    attachment = Column(String, nullable=True)  # Storage key
    created_at = Column(DateTime, default=utc_now, index=True)

    __table_args__ = (
        UniqueConstraint('reported_user_id', 'reporter_id', name='one_report_per_user_reporter'),
    )

class ReportedPost(Base):
    __tablename__ = "reported_posts"

    id = Column(String, primary_key=True, index=True)
    post_id = Column(String, index=True, nullable=False)
    reported_user_id = Column(String, index=True, nullable=False)
    reporter_id = Column(String, index=True, nullable=False)
    report_type = Column(String, nullable=False)
    report_reason = Column(Text, nullable=False)
    attachment = Column(String, nullable=True)
    created_at = Column(DateTime, default=utc_now, index=True)

    __table_args__ = (
        UniqueConstraint('post_id', 'reporter_id', name='one_report_per_post_reporter'),
    )
