from typing import Iterable, List
from collections import Counter

from sqlalchemy.orm import Session

from penpal.modules.posts.comments.models.comment import Comment
from penpal.modules.posts.services.counters import decrement_post_counters_grouped

def collect_comment_subtree(db: Session, root_ids: Iterable[str]) -> List[str]:
    """Ids of the given comments plus every reply below them"""
    ids = list(dict.fromkeys(root_ids))
    seen = set(ids)
    frontier = ids
    while frontier:
        children = [
            row.id for row in db.query(Comment.id).filter(Comment.reply_parent_id.in_(frontier)).all()
            if row.id not in seen
        ]
        seen.update(children)
        ids.extend(children)
        frontier = children
    return ids

def delete_comment_threads(db: Session, comment_ids: Iterable[str]) -> int:
    """
    Delete comments together with all of their replies and lower each post's
    comments_count by the rows removed from it. Joins the caller's unit of work.
    """
    ids = collect_comment_subtree(db, comment_ids)
    if not ids:
        return 0
    rows = db.query(Comment.id, Comment.post_id).filter(Comment.id.in_(ids)).all()
    if not rows:
        return 0
    db.query(Comment).filter(Comment.id.in_([r.id for r in rows])).delete(synchronize_session=False)
    decrement_post_counters_grouped(db, "comments_count", Counter(r.post_id for r in rows))
    return len(rows)
