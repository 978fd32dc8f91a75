from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from penpal.modules.user_management.schemas.user import UserSummary

class PostBase(BaseModel):
    content: str
    tags: List[str] = []

class PostCreate(PostBase):
    images: List[str] = []  # Storage keys uploaded beforehand
    collection_id: Optional[str] = None

class PostImagesUpdate(BaseModel):
    image_keys: List[str]

class PostMove(BaseModel):
    collection_id: Optional[str] = None

class PostCreated(BaseModel):
    post_id: str

class Post(PostBase):
    """Post returned to client, enriched for the viewer"""
    post_id: str
    created_at: datetime
    user_id: str
    collection_id: Optional[str] = None
    post_images: List[str] = []
    reactions_count: int
    comments_count: int
    has_reacted: bool = False
    user_reaction: Optional[str] = None
    is_owner: bool = False
    post_author: UserSummary

class CollectionCreate(BaseModel):
    title: str

class CollectionUpdate(BaseModel):
    title: str

class Collection(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    posts_count: int
    created_at: datetime
