from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from penpal.core.pagination import Page, PaginationOpts
from penpal.db.session import get_db
from penpal.deps import get_current_user_id, get_pagination
from penpal.modules.friendships.schemas.friendship import (
    Friend,
    FriendRequest as FriendRequestSchema,
    FriendRequestCreate,
    FriendshipStatus,
    ReceivedFriendRequest,
)
from penpal.modules.friendships.services.friendship import (
    accept_friend_request,
    cancel_friend_request,
    get_friend_requests,
    get_friendship_status,
    get_user_friends,
    reject_friend_request,
    remove_friend,
    send_friend_request,
)

router = APIRouter()

@router.post("/requests", response_model=FriendRequestSchema)
def send_request(
    *,
    db: Session = Depends(get_db),
    request_in: FriendRequestCreate,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return send_friend_request(db, current_user_id, request_in.receiver_id, request_in.request_message)

@router.get("/requests", response_model=Page[ReceivedFriendRequest])
def list_received_requests(
    *,
    db: Session = Depends(get_db),
    opts: PaginationOpts = Depends(get_pagination),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_friend_requests(db, current_user_id, opts)

@router.post("/requests/{request_id}/accept", response_model=Dict[str, str])
def accept_request(
    *,
    db: Session = Depends(get_db),
    request_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    accept_friend_request(db, request_id, current_user_id)
    return {"message": "Friend request accepted"}

@router.post("/requests/{request_id}/reject", response_model=Dict[str, str])
def reject_request(
    *,
    db: Session = Depends(get_db),
    request_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    reject_friend_request(db, request_id, current_user_id)
    return {"message": "Friend request rejected"}

@router.delete("/requests/{request_id}", response_model=Dict[str, str])
def cancel_request(
    *,
    db: Session = Depends(get_db),
    request_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    cancel_friend_request(db, request_id, current_user_id)
    return {"message": "Friend request cancelled"}

@router.get("", response_model=Page[Friend])
def list_friends(
    *,
    db: Session = Depends(get_db),
    opts: PaginationOpts = Depends(get_pagination),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_user_friends(db, current_user_id, opts)

@router.get("/status/{user_id}", response_model=FriendshipStatus)
def friendship_status(
    *,
    db: Session = Depends(get_db),
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_friendship_status(db, current_user_id, user_id)

@router.delete("/{friend_id}", response_model=Dict[str, str])
def unfriend(
    *,
    db: Session = Depends(get_db),
    friend_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    remove_friend(db, current_user_id, friend_id)
    return {"message": "Friend removed successfully"}
