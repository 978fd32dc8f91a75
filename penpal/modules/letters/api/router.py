from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from penpal.core.pagination import Page, PaginationOpts
from penpal.db.session import get_db
from penpal.deps import get_current_user_id, get_pagination
from penpal.modules.letters.schemas.letter import Letter, LetterCreate, LetterPreview, LetterScheduled
from penpal.modules.letters.services.letter import (
    delete_letter, get_letter, get_received_letters, get_sent_letters, schedule_letter
)

router = APIRouter()

@router.post("", response_model=LetterScheduled)
def send_letter(
    *,
    db: Session = Depends(get_db),
    letter_in: LetterCreate,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    letter = schedule_letter(
        db,
        current_user_id,
        letter_in.recipient_id,
        letter_in.title,
        letter_in.content,
        letter_in.days_until_delivery,
    )
    return LetterScheduled(letter_id=letter.id, deliver_at=letter.deliver_at)

@router.get("/received", response_model=Page[LetterPreview])
def list_received(
    *,
    db: Session = Depends(get_db),
    opts: PaginationOpts = Depends(get_pagination),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_received_letters(db, current_user_id, opts)

@router.get("/sent", response_model=Page[LetterPreview])
def list_sent(
    *,
    db: Session = Depends(get_db),
    opts: PaginationOpts = Depends(get_pagination),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_sent_letters(db, current_user_id, opts)

@router.get("/{letter_id}", response_model=Letter)
def read_letter(
    *,
    db: Session = Depends(get_db),
    letter_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_letter(db, letter_id, current_user_id)

@router.delete("/{letter_id}", response_model=Dict[str, str])
def remove_letter(
    *,
    db: Session = Depends(get_db),
    letter_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    delete_letter(db, letter_id, current_user_id)
    return {"message": "Letter deleted"}
