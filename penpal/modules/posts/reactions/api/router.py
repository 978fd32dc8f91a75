from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from penpal.db.session import get_db
from penpal.deps import get_current_user_id
from penpal.modules.posts.reactions.schemas.reaction import Reaction as ReactionSchema, ReactionCreate
from penpal.modules.posts.reactions.services.reaction import (
    add_reaction, delete_reaction, get_post_reactions, remove_reaction
)

router = APIRouter()

@router.post("", response_model=Dict[str, str])
def react_to_post(
    *,
    db: Session = Depends(get_db),
    post_id: str,
    reaction_in: ReactionCreate,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    reaction = add_reaction(db, post_id, current_user_id, reaction_in.emoji)
    return {"reaction_id": reaction.id, "emoji": reaction.emoji}

@router.get("", response_model=List[ReactionSchema])
def read_reactions(
    *,
    db: Session = Depends(get_db),
    post_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_post_reactions(db, post_id, current_user_id)

@router.delete("", response_model=Dict[str, str])
def remove_own_reaction(
    *,
    db: Session = Depends(get_db),
    post_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    remove_reaction(db, post_id, current_user_id)
    return {"message": "Reaction removed"}

@router.delete("/{reaction_id}", response_model=Dict[str, str])
def remove_reaction_by_id(
    *,
    db: Session = Depends(get_db),
    post_id: str,
    reaction_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    delete_reaction(db, reaction_id, current_user_id)
    return {"message": "Reaction removed"}
