# Import all models here so Base.metadata knows every table before create_all
from penpal.db.session import Base

from penpal.modules.user_management.models.user import User, Profile, UserInformation
from penpal.modules.auth.models.auth import (
    AuthAccount, AuthSession, AuthRefreshToken, AuthVerificationCode, AuthVerifier
)
from penpal.modules.friendships.models.friendship import Friendship, FriendRequest
from penpal.modules.conversations.models.conversation import Conversation, Message
from penpal.modules.notifications.models.notification import Notification
from penpal.modules.posts.models.post import Post, Collection
from penpal.modules.posts.comments.models.comment import Comment
from penpal.modules.posts.reactions.models.reaction import Reaction
from penpal.modules.moderation.models.moderation import BlockedUser, ReportedUser, ReportedPost
from penpal.modules.letters.models.letter import Letter
