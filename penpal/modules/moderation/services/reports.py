from typing import Dict, Optional, Type, Union
import uuid
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from penpal.core.config import settings
from penpal.core.errors import AlreadyReported, NotAuthorized, NotFound, SelfReferenceError, ValidationFailed
from penpal.core.pagination import Page, PaginationOpts, paginate
from penpal.core.storage import blob_storage
from penpal.modules.moderation.models.moderation import ReportedPost, ReportedUser
from penpal.modules.moderation.schemas.moderation import (
    CounterRepair, PostReportDetails, ReportedPostPreview, ReportParty, ReportType, UserReportDetails,
)
from penpal.modules.moderation.services.cascade import delete_account_cascade, delete_post_cascade
from penpal.modules.posts.models.post import Post
from penpal.modules.posts.services.counters import recount_all
from penpal.modules.user_management.models.user import User
from penpal.modules.user_management.services.summaries import get_user, get_users_by_ids

logger = logging.getLogger(__name__)

def _clean_reason(reason: str) -> str:
    reason = (reason or "").strip()
    if not settings.REPORT_REASON_MIN_LENGTH <= len(reason) <= settings.REPORT_REASON_MAX_LENGTH:
        raise ValidationFailed(
            f"Report reason must be {settings.REPORT_REASON_MIN_LENGTH} to "
            f"{settings.REPORT_REASON_MAX_LENGTH} characters"
        )
    return reason

def _save_report(db: Session, report: Union[ReportedUser, ReportedPost]) -> str:
    db.add(report)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadyReported("You have already reported this")
    return report.id

def report_user(
    db: Session,
    reporter_id: str,
    reported_user_id: str,
    report_type: Union[ReportType, str],
    report_reason: str,
    attachment: Optional[str] = None,
) -> str:
    reason = _clean_reason(report_reason)
    if reporter_id == reported_user_id:
        raise SelfReferenceError("Cannot report yourself")
    if not get_user(db, reported_user_id):
        raise NotFound("User not found")
    existing = db.query(ReportedUser).filter(
        ReportedUser.reported_user_id == reported_user_id, ReportedUser.reporter_id == reporter_id
    ).first()
    if existing:
        raise AlreadyReported("You have already reported this user")

    report_id = _save_report(db, ReportedUser(
        id=str(uuid.uuid4()),
        reported_user_id=reported_user_id,
        reporter_id=reporter_id,
        report_type=ReportType(report_type).value,
        report_reason=reason,
        attachment=attachment,
    ))
    logger.info(f"User {reporter_id} reported user {reported_user_id}")
    return report_id

def report_post(
    db: Session,
    reporter_id: str,
    post_id: str,
    report_type: Union[ReportType, str],
    report_reason: str,
    attachment: Optional[str] = None,
) -> str:
    reason = _clean_reason(report_reason)
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise NotFound("Post not found")
    if post.user_id == reporter_id:
        raise SelfReferenceError("Cannot report your own post")
    existing = db.query(ReportedPost).filter(
        ReportedPost.post_id == post_id, ReportedPost.reporter_id == reporter_id
    ).first()
    if existing:
        raise AlreadyReported("You have already reported this post")

    report_id = _save_report(db, ReportedPost(
        id=str(uuid.uuid4()),
        post_id=post_id,
        reported_user_id=post.user_id,
        reporter_id=reporter_id,
        report_type=ReportType(report_type).value,
        report_reason=reason,
        attachment=attachment,
    ))
    logger.info(f"User {reporter_id} reported post {post_id}")
    return report_id

# Admin operations

def _require_admin(db: Session, user_id: str) -> User:
    user = get_user(db, user_id)
    if not user or not user.is_admin:
        raise NotAuthorized("Admin access required")
    return user

def _party(user: Optional[User]) -> ReportParty:
    if not user:
        return ReportParty(name="Deleted user", user_name="", profile_picture=None)
    return ReportParty(
        name=user.name,
        user_name=user.user_name,
        profile_picture=blob_storage.get_url(user.profile_picture),
    )

def get_user_reports(db: Session, admin_id: str, opts: PaginationOpts) -> Page[UserReportDetails]:
    _require_admin(db, admin_id)
    result = paginate(db.query(ReportedUser), ReportedUser, opts)

    users = get_users_by_ids(
        db, [r.reported_user_id for r in result.page] + [r.reporter_id for r in result.page]
    )
    page = [
        UserReportDetails(
            report_id=report.id,
            reported_user_id=report.reported_user_id,
            reporter_id=report.reporter_id,
            report_type=report.report_type,
            report_reason=report.report_reason,
            attachment_url=blob_storage.get_url(report.attachment),
            created_at=report.created_at,
            reported_user=_party(users.get(report.reported_user_id)),
            reporter=_party(users.get(report.reporter_id)),
        )
        for report in result.page
    ]
    return Page[UserReportDetails](page=page, is_done=result.is_done, continue_cursor=result.continue_cursor)

def get_post_reports(db: Session, admin_id: str, opts: PaginationOpts) -> Page[PostReportDetails]:
    _require_admin(db, admin_id)
    result = paginate(db.query(ReportedPost), ReportedPost, opts)

    users = get_users_by_ids(
        db, [r.reported_user_id for r in result.page] + [r.reporter_id for r in result.page]
    )
    post_ids = [r.post_id for r in result.page]
    posts: Dict[str, Post] = {
        p.id: p for p in db.query(Post).filter(Post.id.in_(post_ids)).all()
    } if post_ids else {}

    page = []
    for report in result.page:
        post = posts.get(report.post_id)
        preview = ReportedPostPreview(
            content=post.content if post else "",
            image_urls=[blob_storage.get_url(key) for key in (post.images or [])] if post else [],
        )
        page.append(PostReportDetails(
            report_id=report.id,
            post_id=report.post_id,
            reported_user_id=report.reported_user_id,
            reporter_id=report.reporter_id,
            report_type=report.report_type,
            report_reason=report.report_reason,
            attachment_url=blob_storage.get_url(report.attachment),
            created_at=report.created_at,
            post=preview,
            post_owner=_party(users.get(report.reported_user_id)),
            reporter=_party(users.get(report.reporter_id)),
        ))
    return Page[PostReportDetails](page=page, is_done=result.is_done, continue_cursor=result.continue_cursor)

def _get_report(db: Session, model: Type, report_id: str):
    report = db.query(model).filter(model.id == report_id).first()
    if not report:
        raise NotFound("Report not found")
    return report

def _delete_report(db: Session, report) -> None:
    blob_storage.delete_object(report.attachment)
    db.delete(report)
    db.commit()

def resolve_user_report(db: Session, admin_id: str, report_id: str) -> None:
    """Dismiss a user report without acting on the user"""
    _require_admin(db, admin_id)
    _delete_report(db, _get_report(db, ReportedUser, report_id))

def resolve_post_report(db: Session, admin_id: str, report_id: str) -> None:
    _require_admin(db, admin_id)
    _delete_report(db, _get_report(db, ReportedPost, report_id))

def delete_user_and_resolve_report(db: Session, admin_id: str, report_id: str) -> Dict[str, int]:
    """Delete the reported account. The report itself is removed as part of the account cascade."""
    _require_admin(db, admin_id)
    report = _get_report(db, ReportedUser, report_id)
    reported_user_id = report.reported_user_id
    if reported_user_id == admin_id:
        raise SelfReferenceError("Use account deletion to remove your own account")

    logger.info(f"Admin {admin_id} deleting user {reported_user_id} from report {report_id}")
    removed = delete_account_cascade(db, reported_user_id)

    leftover = db.query(ReportedUser).filter(ReportedUser.id == report_id).first()
    if leftover:
        _delete_report(db, leftover)
    return removed

def delete_post_and_resolve_report(db: Session, admin_id: str, report_id: str) -> None:
    _require_admin(db, admin_id)
    report = _get_report(db, ReportedPost, report_id)
    post_id = report.post_id

    logger.info(f"Admin {admin_id} deleting post {post_id} from report {report_id}")
    delete_post_cascade(db, post_id)

    # Every report about the post is settled with it
    for leftover in db.query(ReportedPost).filter(ReportedPost.post_id == post_id).all():
        blob_storage.delete_object(leftover.attachment)
        db.delete(leftover)
    db.commit()

def recount_counters(db: Session, admin_id: str) -> CounterRepair:
    """Rebuild every denormalized counter from live rows"""
    _require_admin(db, admin_id)
    drifted = recount_all(db)
    return CounterRepair(posts=drifted["posts"], collections=drifted["collections"])
