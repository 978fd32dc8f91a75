from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from penpal.core.pagination import Page, PaginationOpts
from penpal.db.session import get_db
from penpal.deps import get_current_user_id, get_pagination
from penpal.modules.moderation.schemas.moderation import (
    BlockedUser,
    CounterRepair,
    PostReportDetails,
    ReportCreated,
    ReportPostCreate,
    ReportUserCreate,
    UserReportDetails,
)
from penpal.modules.moderation.services.blocking import block_user, get_blocked_users
from penpal.modules.moderation.services.reports import (
    delete_post_and_resolve_report,
    delete_user_and_resolve_report,
    get_post_reports,
    get_user_reports,
    recount_counters,
    report_post,
    report_user,
    resolve_post_report,
    resolve_user_report,
)

router = APIRouter()

@router.post("/blocks/{user_id}", response_model=Dict[str, str])
def block(
    *,
    db: Session = Depends(get_db),
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    block_user(db, current_user_id, user_id)
    return {"message": "User blocked"}

@router.get("/blocks", response_model=Page[BlockedUser])
def list_blocked_users(
    *,
    db: Session = Depends(get_db),
    opts: PaginationOpts = Depends(get_pagination),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_blocked_users(db, current_user_id, opts)

@router.post("/reports/users", response_model=ReportCreated)
def create_user_report(
    *,
    db: Session = Depends(get_db),
    report_in: ReportUserCreate,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    report_id = report_user(
        db,
        current_user_id,
        report_in.reported_user_id,
        report_in.report_type,
        report_in.report_reason,
        report_in.attachment,
    )
    return ReportCreated(report_id=report_id)

@router.post("/reports/posts", response_model=ReportCreated)
def create_post_report(
    *,
    db: Session = Depends(get_db),
    report_in: ReportPostCreate,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    report_id = report_post(
        db,
        current_user_id,
        report_in.post_id,
        report_in.report_type,
        report_in.report_reason,
        report_in.attachment,
    )
    return ReportCreated(report_id=report_id)

# Admin routes. Admin rights are checked by the services.

@router.get("/admin/reports/users", response_model=Page[UserReportDetails])
def list_user_reports(
    *,
    db: Session = Depends(get_db),
    opts: PaginationOpts = Depends(get_pagination),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_user_reports(db, current_user_id, opts)

@router.get("/admin/reports/posts", response_model=Page[PostReportDetails])
def list_post_reports(
    *,
    db: Session = Depends(get_db),
    opts: PaginationOpts = Depends(get_pagination),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_post_reports(db, current_user_id, opts)

@router.delete("/admin/reports/users/{report_id}", response_model=Dict[str, str])
def dismiss_user_report(
    *,
    db: Session = Depends(get_db),
    report_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    resolve_user_report(db, current_user_id, report_id)
    return {"message": "Report resolved"}

@router.delete("/admin/reports/posts/{report_id}", response_model=Dict[str, str])
def dismiss_post_report(
    *,
    db: Session = Depends(get_db),
    report_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    resolve_post_report(db, current_user_id, report_id)
    return {"message": "Report resolved"}

@router.post("/admin/reports/users/{report_id}/delete-user", response_model=Dict[str, Any])
def delete_reported_user(
    *,
    db: Session = Depends(get_db),
    report_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    removed = delete_user_and_resolve_report(db, current_user_id, report_id)
    return {"message": "User deleted", "removed": removed}

@router.post("/admin/reports/posts/{report_id}/delete-post", response_model=Dict[str, str])
def delete_reported_post(
    *,
    db: Session = Depends(get_db),
    report_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    delete_post_and_resolve_report(db, current_user_id, report_id)
    return {"message": "Post deleted"}

@router.post("/admin/recount", response_model=CounterRepair)
def recount(
    *,
    db: Session = Depends(get_db),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return recount_counters(db, current_user_id)
