from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from penpal.core.pagination import Page, PaginationOpts
from penpal.db.session import get_db
from penpal.deps import get_current_user_id, get_pagination
from penpal.modules.conversations.schemas.conversation import (
    ConversationCreate,
    ConversationCreated,
    ConversationInfo,
    ConversationSummary,
    Message as MessageSchema,
    MessageCreate,
    MessageCreated,
)
from penpal.modules.conversations.services.conversation import (
    create_conversation,
    delete_conversation,
    delete_message,
    get_conversation_info,
    get_conversation_messages,
    get_user_conversations,
    mark_as_read,
    send_message,
)

router = APIRouter()

@router.post("", response_model=ConversationCreated)
def start_conversation(
    *,
    db: Session = Depends(get_db),
    conversation_in: ConversationCreate,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    group_id = create_conversation(db, current_user_id, conversation_in.other_user_id)
    return ConversationCreated(conversation_group_id=group_id)

@router.get("", response_model=Page[ConversationSummary])
def list_conversations(
    *,
    db: Session = Depends(get_db),
    opts: PaginationOpts = Depends(get_pagination),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_user_conversations(db, current_user_id, opts)

@router.get("/{group_id}", response_model=ConversationInfo)
def conversation_info(
    *,
    db: Session = Depends(get_db),
    group_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_conversation_info(db, group_id, current_user_id)

@router.delete("/{group_id}", response_model=Dict[str, str])
def remove_conversation(
    *,
    db: Session = Depends(get_db),
    group_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    delete_conversation(db, group_id, current_user_id)
    return {"message": "Conversation deleted"}

@router.put("/{group_id}/read", response_model=Dict[str, str])
def read_conversation(
    *,
    db: Session = Depends(get_db),
    group_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    mark_as_read(db, group_id, current_user_id)
    return {"message": "Conversation marked as read"}

@router.get("/{group_id}/messages", response_model=Page[MessageSchema])
def list_messages(
    *,
    db: Session = Depends(get_db),
    group_id: str,
    opts: PaginationOpts = Depends(get_pagination),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_conversation_messages(db, group_id, current_user_id, opts)

@router.post("/{group_id}/messages", response_model=MessageCreated)
def post_message(
    *,
    db: Session = Depends(get_db),
    group_id: str,
    message_in: MessageCreate,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    message = send_message(
        db,
        group_id,
        current_user_id,
        message_in.type.value,
        content=message_in.content,
        image_id=message_in.image_id,
        reply_parent_id=message_in.reply_parent_id,
    )
    return MessageCreated(message_id=message.id)

@router.delete("/messages/{message_id}", response_model=Dict[str, str])
def remove_message(
    *,
    db: Session = Depends(get_db),
    message_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    delete_message(db, message_id, current_user_id)
    return {"message": "Message deleted"}
