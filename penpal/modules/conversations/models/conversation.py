from sqlalchemy import Column, String, DateTime, Boolean, Text, UniqueConstraint, Index

from penpal.core.clock import utc_now
from penpal.db.session import Base

# One row per participant. Both rows share conversation_group_id.
class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)  # The participant who owns this row
    other_user_id = Column(String, index=True, nullable=False)
    conversation_group_id = Column(String, index=True, nullable=False)
    last_message_id = Column(String, nullable=True)
    last_message_time = Column(DateTime, default=utc_now, nullable=False)
    has_unread_messages = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utc_now)

    __table_args__ = (
        UniqueConstraint('user_id', 'other_user_id', name='one_conversation_row_per_pair'),
        Index('ix_conversations_user_last_message', 'user_id', 'last_message_time'),
    )

class Message(Base):
    __tablename__ = "messages"

    id = Column(String, primary_key=True, index=True)
    conversation_group_id = Column(String, index=True, nullable=False)
    sender_id = Column(String, index=True, nullable=False)
    type = Column(String, nullable=False)  # text, image
    content = Column(Text, nullable=True)
    image_id = Column(String, nullable=True)  # Storage key
    reply_parent_id = Column(String, index=True, nullable=True)
    created_at = Column(DateTime, default=utc_now, index=True)
