"""
Modules package initialization.
Each functional module keeps its own models, schemas, services and api router.
"""

from penpal.modules import auth
from penpal.modules import user_management
from penpal.modules import friendships
from penpal.modules import conversations
from penpal.modules import notifications
from penpal.modules import posts
from penpal.modules import moderation
from penpal.modules import letters
from penpal.modules import home_feed
