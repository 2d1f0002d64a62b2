"""
Board posts

PUT is an upsert keyed by the client-generated id. Ownership decides how
much of the body is applied:
- admins: everything
- the author: everything except the pin fields
- other approved members: comments only
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Any, Dict, List, Optional

from unionclient.role_gate import ADMIN_AUTHORED_BOARDS
from unionsite.core.database import get_db
from unionsite.core.exceptions import AdminRequiredError, AuthorizationError, PostNotFoundError, ValidationError
from unionsite.core.logging_config import logger
from unionsite.models.post import Post
from unionsite.schemas.post import PostUpsert, ViewCountResponse
from unionsite.services.push_service import push_service
from unionsite.modules.auth.dependencies import (
    Principal,
    get_current_principal,
    get_approved_writer,
)

router = APIRouter()

PIN_FIELDS = {"pinned", "pinned_at"}
COMMENT_FIELDS = {"comments", "views"}
REQUIRED_ON_CREATE = ("type", "title", "author", "created_at")


def _is_owner(post: Post, principal: Principal) -> bool:
    return principal.user_id is not None and principal.user_id in (post.author_id, post.user_id)


def _allowed_changes(changes: Dict[str, Any], principal: Principal, post: Optional[Post]) -> Dict[str, Any]:
    if principal.is_admin:
        return changes
    if post is None or _is_owner(post, principal):
        return {k: v for k, v in changes.items() if k not in PIN_FIELDS}
    return {k: v for k, v in changes.items() if k == "comments"}


@router.get("")
async def list_posts(db: AsyncSession = Depends(get_db)) -> List[Dict[str, Any]]:
    """All posts, newest first, without content/attachments/comments"""
    result = await db.execute(select(Post).order_by(Post.created_at.desc()))
    return [post.to_summary() for post in result.scalars().all()]


@router.get("/{post_id}")
async def get_post(post_id: str, db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    post = await db.get(Post, post_id)
    if post is None:
        raise PostNotFoundError(post_id)
    return post.to_dict()


@router.put("/{post_id}")
async def upsert_post(
    post_id: str,
    body: PostUpsert,
    principal: Principal = Depends(get_approved_writer),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """Create or update a post; fields left out of the body are unchanged"""
    post = await db.get(Post, post_id)
    changes = _allowed_changes(body.changes(), principal, post)
    created = post is None

    # Members may still comment on admin-authored boards
    board = changes.get("type") or (post.type if post else None)
    if board in ADMIN_AUTHORED_BOARDS and not principal.is_admin and set(changes) - COMMENT_FIELDS:
        raise AdminRequiredError()

    if created:
        missing = [field for field in REQUIRED_ON_CREATE if not changes.get(field)]
        if missing:
            raise ValidationError(f"Missing fields: {', '.join(missing)}", field=missing[0])
        post = Post(id=post_id, views=changes.pop("views", None) or 0, content="")
        if not principal.is_admin:
            post.user_id = principal.user_id
            changes["author_id"] = principal.user_id
        db.add(post)
    else:
        # The counter is owned by POST /views
        changes.pop("views", None)
        if not changes:
            raise AuthorizationError("Not allowed to modify this post")

    for field, value in changes.items():
        setattr(post, field, value)

    await db.commit()
    await db.refresh(post)

    if created:
        logger.info(f"[Posts] Created {post.id} on {post.type}", extra={"post_id": post.id, "board": post.type})
        await push_service.notify_new_post(db, post)
        await db.commit()

    return post.to_dict()


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Delete a post (author or admin)"""
    post = await db.get(Post, post_id)
    if post is None:
        raise PostNotFoundError(post_id)

    if not principal.is_admin and not _is_owner(post, principal):
        raise AuthorizationError("Only the author or an admin can delete this post")

    await db.delete(post)
    await db.commit()
    logger.info(f"[Posts] Deleted {post_id}", extra={"post_id": post_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/views", response_model=ViewCountResponse)
async def increment_views(post_id: str, db: AsyncSession = Depends(get_db)):
    """Count a view; open to anonymous readers"""
    post = await db.get(Post, post_id)
    if post is None:
        raise PostNotFoundError(post_id)

    post.views = (post.views or 0) + 1
    await db.commit()
    return ViewCountResponse(id=post.id, views=post.views)
