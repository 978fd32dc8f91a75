from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from penpal.core.pagination import Page, PaginationOpts
from penpal.db.session import get_db
from penpal.deps import get_current_user_id, get_pagination
from penpal.modules.notifications.schemas.notification import (
    Notification as NotificationSchema,
    UnreadStatus,
)
from penpal.modules.notifications.services.notification import (
    count_unread_notifications,
    delete_all_notifications,
    delete_notification,
    get_user_notifications,
    mark_all_as_read,
    mark_as_read,
)

router = APIRouter()

@router.get("", response_model=Page[NotificationSchema])
def read_notifications(
    db: Session = Depends(get_db),
    opts: PaginationOpts = Depends(get_pagination),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_user_notifications(db, current_user_id, opts)

@router.get("/unread", response_model=UnreadStatus)
def unread_status(
    db: Session = Depends(get_db),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    unread_count = count_unread_notifications(db, current_user_id)
    return UnreadStatus(has_unread=unread_count > 0, unread_count=unread_count)

@router.put("/mark-all-read", response_model=Dict[str, Any])
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    updated = mark_all_as_read(db, current_user_id)
    return {
        "message": "All notifications marked as read",
        "count": updated,
    }

@router.put("/{notification_id}/read", response_model=Dict[str, str])
def mark_notification_read(
    *,
    db: Session = Depends(get_db),
    notification_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    mark_as_read(db, notification_id, current_user_id)
    return {"message": "Notification marked as read"}

@router.delete("/{notification_id}", response_model=Dict[str, str])
def remove_notification(
    *,
    db: Session = Depends(get_db),
    notification_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    delete_notification(db, notification_id, current_user_id)
    return {"message": "Notification deleted"}

@router.delete("", response_model=Dict[str, Any])
def remove_all_notifications(
    db: Session = Depends(get_db),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    deleted = delete_all_notifications(db, current_user_id)
    return {
        "message": "All notifications deleted",
        "count": deleted,
    }
