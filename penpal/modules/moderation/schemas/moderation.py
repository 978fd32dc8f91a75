from typing import List, Optional
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field

from penpal.core.config import settings
from penpal.modules.user_management.schemas.user import ProfileSummary

class ReportType(str, Enum):
    harassment = "harassment"
    hate_speech = "hate_speech"
    inappropriate_content = "inappropriate_content"
    spam = "spam"
    other = "other"

class BlockedUser(ProfileSummary):
    blocked_at: datetime

class ReportBase(BaseModel):
    report_type: ReportType
    report_reason: str = Field(..., max_length=settings.REPORT_REASON_MAX_LENGTH * 2)
    attachment: Optional[str] = None  # Storage key of a screenshot

class ReportUserCreate(ReportBase):
    reported_user_id: str

class ReportPostCreate(ReportBase):
    post_id: str

class ReportCreated(BaseModel):
    report_id: str

class ReportParty(BaseModel):
    name: str
    user_name: str
    profile_picture: Optional[str] = None

class UserReportDetails(BaseModel):
    report_id: str
    reported_user_id: str
    reporter_id: str
    report_type: ReportType
    report_reason: str
    attachment_url: Optional[str] = None
    created_at: datetime
    reported_user: ReportParty
    reporter: ReportParty

class ReportedPostPreview(BaseModel):
    content: str
    image_urls: List[str] = []

class PostReportDetails(BaseModel):
    report_id: str
    post_id: str
    reported_user_id: str
    reporter_id: str
    report_type: ReportType
    report_reason: str
    attachment_url: Optional[str] = None
    created_at: datetime
    post: ReportedPostPreview
    post_owner: ReportParty
    reporter: ReportParty

class CounterRepair(BaseModel):
    posts: int
    collections: int
