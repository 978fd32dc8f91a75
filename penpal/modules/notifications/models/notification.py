from sqlalchemy import Column, String, DateTime, Boolean, JSON, Index

from penpal.core.clock import utc_now
from penpal.db.session import Base

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, index=True)
    recipient_id = Column(String, index=True, nullable=False)
    sender_id = Column(String, index=True, nullable=False)  # The user who triggered the notification
    type = Column(String, nullable=False)  # See NotificationType
    params = Column(JSON, default=dict)  # Structured values the text is rendered from
    has_unread = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utc_now)

    __table_args__ = (
        Index('ix_notifications_recipient_unread', 'recipient_id', 'has_unread'),
    )
