from sqlalchemy import Column, String, DateTime, Text, UniqueConstraint, CheckConstraint, Index

from penpal.core.clock import utc_now
from penpal.db.session import Base

# One directional row per side. A logical friendship is the pair (a, b) + (b, a).
class Friendship(Base):
    __tablename__ = "friendships"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    friend_id = Column(String, index=True, nullable=False)
    created_at = Column(DateTime, default=utc_now)

    __table_args__ = (
        UniqueConstraint('user_id', 'friend_id', name='unique_friendship'),
        CheckConstraint('user_id != friend_id', name='no_self_friendship'),
    )

# Pending friend request, at most one per unordered pair. Accepting or rejecting deletes the row.
class FriendRequest(Base):
    __tablename__ = "friend_requests"

    id = Column(String, primary_key=True, index=True)
    sender_id = Column(String, index=True, nullable=False)
    receiver_id = Column(String, index=True, nullable=False)
    pair_key = Column(String, nullable=False)  # Sorted "a-b" of the two ids, same in both directions
    request_message = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utc_now)

    __table_args__ = (
        Index('ix_friend_requests_pair', 'sender_id', 'receiver_id'),
        UniqueConstraint('pair_key', name='one_pending_request_per_pair'),
    )
