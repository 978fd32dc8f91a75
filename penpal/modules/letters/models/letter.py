from sqlalchemy import Column, String, DateTime, Text, Index

from penpal.core.clock import utc_now
from penpal.db.session import Base

class Letter(Base):
    __tablename__ = "letters"

    id = Column(String, primary_key=True, index=True)
    sender_id = Column(String, index=True, nullable=False)
    recipient_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    deliver_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now, index=True)

    __table_args__ = (
        Index('ix_letters_recipient_deliver_at', 'recipient_id', 'deliver_at'),
    )
