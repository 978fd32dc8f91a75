from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from penpal.core.pagination import Page, PaginationOpts
from penpal.db.session import get_db
from penpal.deps import get_current_user_id, get_pagination
from penpal.modules.posts.schemas.post import (
    Collection as CollectionSchema,
    CollectionCreate,
    CollectionUpdate,
    Post as PostSchema,
    PostCreate,
    PostCreated,
    PostImagesUpdate,
    PostMove,
)
from penpal.modules.posts.services.collection import (
    create_collection,
    delete_collection,
    get_user_collections,
    move_post_to_collection,
    rename_collection,
)
from penpal.modules.posts.services.post import (
    create_post,
    delete_post,
    get_collection_posts,
    get_post_details,
    get_user_posts,
    update_post_images,
)

router = APIRouter()

@router.post("", response_model=PostCreated)
def create_new_post(
    *,
    db: Session = Depends(get_db),
    post_in: PostCreate,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    post = create_post(
        db,
        current_user_id,
        post_in.content,
        post_in.tags,
        images=post_in.images,
        collection_id=post_in.collection_id,
    )
    return PostCreated(post_id=post.id)

# Collection routes come before /{post_id} so they are not captured by it

@router.post("/collections", response_model=CollectionSchema)
def create_new_collection(
    *,
    db: Session = Depends(get_db),
    collection_in: CollectionCreate,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return create_collection(db, current_user_id, collection_in.title)

@router.get("/collections/user/{user_id}", response_model=List[CollectionSchema])
def list_user_collections(
    *,
    db: Session = Depends(get_db),
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_user_collections(db, user_id)

@router.get("/collections/{collection_id}/posts", response_model=Page[PostSchema])
def list_collection_posts(
    *,
    db: Session = Depends(get_db),
    collection_id: str,
    opts: PaginationOpts = Depends(get_pagination),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_collection_posts(db, collection_id, current_user_id, opts)

@router.put("/collections/{collection_id}", response_model=CollectionSchema)
def update_collection(
    *,
    db: Session = Depends(get_db),
    collection_id: str,
    collection_in: CollectionUpdate,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return rename_collection(db, collection_id, current_user_id, collection_in.title)

@router.delete("/collections/{collection_id}", response_model=Dict[str, str])
def remove_collection(
    *,
    db: Session = Depends(get_db),
    collection_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    delete_collection(db, collection_id, current_user_id)
    return {"message": "Collection deleted"}

@router.get("/user/{user_id}", response_model=Page[PostSchema])
def read_user_posts(
    *,
    db: Session = Depends(get_db),
    user_id: str,
    opts: PaginationOpts = Depends(get_pagination),
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_user_posts(db, user_id, current_user_id, opts)

@router.get("/{post_id}", response_model=PostSchema)
def read_post(
    *,
    db: Session = Depends(get_db),
    post_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    return get_post_details(db, post_id, current_user_id)

@router.put("/{post_id}/images", response_model=PostSchema)
def update_images(
    *,
    db: Session = Depends(get_db),
    post_id: str,
    images_in: PostImagesUpdate,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    update_post_images(db, post_id, current_user_id, images_in.image_keys)
    return get_post_details(db, post_id, current_user_id)

@router.put("/{post_id}/collection", response_model=PostSchema)
def move_post(
    *,
    db: Session = Depends(get_db),
    post_id: str,
    move_in: PostMove,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    move_post_to_collection(db, post_id, current_user_id, move_in.collection_id)
    return get_post_details(db, post_id, current_user_id)

@router.delete("/{post_id}", response_model=Dict[str, str])
def remove_post(
    *,
    db: Session = Depends(get_db),
    post_id: str,
    current_user_id: str = Depends(get_current_user_id),
) -> Any:
    delete_post(db, post_id, current_user_id)
    return {"message": "Post deleted"}
