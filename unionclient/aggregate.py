"""
Pure transformations over the post and member collections.

Every function takes the previous collection and returns a new list. The
addressed post is replaced by a new Post object; every other element is the
same object as before, so callers can compare by identity to find what
changed. New comments and replies are appended, never re-sorted.

Role checks are the caller's job (see role_gate); nothing here consults the
current user.
"""

from dataclasses import replace
from typing import Callable, List, Optional, Sequence, Tuple

from unionclient.models import Comment, Member, Post


def find_post(posts: Sequence[Post], post_id: str) -> Optional[Post]:
    for post in posts:
        if post.id == post_id:
            return post
    return None


def _map_post(
    posts: Sequence[Post],
    post_id: str,
    change: Callable[[Post], Post],
) -> List[Post]:
    return [change(p) if p.id == post_id else p for p in posts]


# ==========================================
# Comments and replies
# ==========================================

def add_comment(
    posts: Sequence[Post],
    post_id: str,
    comment: Comment,
    parent_id: Optional[str] = None,
) -> List[Post]:
    """Append a comment, or a reply to the top-level comment `parent_id`"""

    def change(post: Post) -> Post:
        comments = post.comments or ()
        if parent_id is None:
            return post.with_changes(comments=comments + (comment,))
        return post.with_changes(comments=tuple(
            replace(c, replies=c.replies + (comment,)) if c.id == parent_id else c
            for c in comments
        ))

    return _map_post(posts, post_id, change)


def edit_comment(
    posts: Sequence[Post],
    post_id: str,
    comment_id: str,
    content: str,
    parent_id: Optional[str] = None,
) -> List[Post]:
    """Replace the text of a comment (or of a reply under `parent_id`)"""

    def edit(c: Comment) -> Comment:
        return replace(c, content=content)

    def change(post: Post) -> Post:
        comments = post.comments or ()
        if parent_id is None:
            updated = tuple(edit(c) if c.id == comment_id else c for c in comments)
        else:
            updated = tuple(
                replace(c, replies=tuple(edit(r) if r.id == comment_id else r for r in c.replies))
                if c.id == parent_id else c
                for c in comments
            )
        return post.with_changes(comments=updated)

    return _map_post(posts, post_id, change)


def delete_comment(
    posts: Sequence[Post],
    post_id: str,
    comment_id: str,
    parent_id: Optional[str] = None,
) -> List[Post]:
    """Drop a comment (with its replies) or a single reply under `parent_id`"""

    def change(post: Post) -> Post:
        comments = post.comments or ()
        if parent_id is None:
            updated = tuple(c for c in comments if c.id != comment_id)
        else:
            updated = tuple(
                replace(c, replies=tuple(r for r in c.replies if r.id != comment_id))
                if c.id == parent_id else c
                for c in comments
            )
        return post.with_changes(comments=updated)

    return _map_post(posts, post_id, change)


# ==========================================
# Posts
# ==========================================

def upsert_post(posts: Sequence[Post], post: Post) -> List[Post]:
    """Replace the post with the same id in place, or put a new one first"""
    if find_post(posts, post.id) is None:
        return [post, *posts]
    return _map_post(posts, post.id, lambda _: post)


def remove_post(posts: Sequence[Post], post_id: str) -> Tuple[List[Post], Optional[Post]]:
    """Return (remaining posts, removed post or None)"""
    removed = find_post(posts, post_id)
    if removed is None:
        return list(posts), None
    return [p for p in posts if p.id != post_id], removed


def merge_detail(posts: Sequence[Post], detail: Post) -> List[Post]:
    """
    Swap a list-view post for its fully loaded version.

    The view count never goes down: a local +1 may not have reached the
    server yet when the detail was read.
    """
    local = find_post(posts, detail.id)
    if local is not None and local.views > detail.views:
        detail = detail.with_changes(views=local.views)
    return upsert_post(posts, detail)


def increment_views(posts: Sequence[Post], post_id: str) -> List[Post]:
    return _map_post(posts, post_id, lambda p: p.with_changes(views=p.views + 1))


def set_pinned(
    posts: Sequence[Post],
    post_id: str,
    pinned: bool,
    pinned_at: Optional[str],
) -> List[Post]:
    return _map_post(
        posts,
        post_id,
        lambda p: p.with_changes(pinned=pinned, pinned_at=pinned_at if pinned else None),
    )


def sort_for_board(posts: Sequence[Post], board: str) -> List[Post]:
    """Posts of one board: pinned first, latest pin first, then newest first"""
    board_posts = [p for p in posts if p.type.value == board]
    # Stable sorts, least significant key first
    board_posts.sort(key=lambda p: p.created_at or "", reverse=True)
    board_posts.sort(key=lambda p: p.pinned_at or "", reverse=True)
    board_posts.sort(key=lambda p: not p.pinned)
    return board_posts


# ==========================================
# Members
# ==========================================

def find_member(members: Sequence[Member], member_id: str) -> Optional[Member]:
    for member in members:
        if member.id == member_id:
            return member
    return None


def add_member(members: Sequence[Member], member: Member) -> List[Member]:
    return [member, *[m for m in members if m.id != member.id]]


def approve_member(members: Sequence[Member], member_id: str) -> List[Member]:
    return [
        replace(m, is_approved=True) if m.id == member_id else m
        for m in members
    ]


def remove_member(members: Sequence[Member], member_id: str) -> List[Member]:
    return [m for m in members if m.id != member_id]
