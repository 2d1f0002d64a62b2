"""
Data reconciliation layer

Owns the post, member, settings and trash collections. Every mutation goes
through the same four steps:

    1. compute the new collection with a pure function from `aggregate`
    2. apply it in memory (callers see it immediately)
    3. persist it to the local snapshot
    4. write it to the remote backend, best effort

A failed remote write comes back as an `Err` but the local change stays;
there is no rollback and no merge, the last writer wins. Signup and
withdrawal are the exceptions: they touch the remote first and only change
local state once the remote call has succeeded.

Comment and pin changes rewrite the whole post, so they need its full
version; when that cannot be loaded nothing is changed.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, List, Optional, Set

from unionclient import aggregate
from unionclient.errors import (
    ClientError,
    NotConfiguredError,
    NotFoundError,
    RemoteError,
)
from unionclient.models import (
    INITIAL_POSTS,
    Comment,
    Member,
    Post,
    SiteSettings,
    now_iso,
)
from unionclient.remote import RemoteBackend
from unionclient.result import Err, Ok, Outcome
from unionclient.snapshot import LocalSnapshot

logger = logging.getLogger(__name__)


@dataclass
class SiteData:
    posts: List[Post]
    members: List[Member]
    settings: SiteSettings
    deleted_posts: List[Post]


class DataReconciler:
    """Single writer for the site's collections"""

    def __init__(self, snapshot: LocalSnapshot, remote: Optional[RemoteBackend] = None):
        self.snapshot = snapshot
        self.remote = remote

        self.posts: List[Post] = list(INITIAL_POSTS)
        self.members: List[Member] = []
        self.settings: SiteSettings = SiteSettings()
        self.deleted_posts: List[Post] = []

        self._background: Set[asyncio.Task] = set()

    @property
    def remote_configured(self) -> bool:
        return self.remote is not None

    def data(self) -> SiteData:
        return SiteData(
            posts=self.posts,
            members=self.members,
            settings=self.settings,
            deleted_posts=self.deleted_posts,
        )

    # ==========================================
    # Loading
    # ==========================================

    async def load_all(self) -> Outcome:
        """
        Load everything.

        With a remote backend the three collections are fetched together and
        each one that arrives replaces local state; a part that fails leaves
        what was there before. Without one, the local snapshot is read.
        Never raises.
        """
        self.deleted_posts = self.snapshot.load_deleted_posts()

        if not self.remote_configured:
            self.posts = self.snapshot.load_posts()
            self.members = self.snapshot.load_members()
            self.settings = self.snapshot.load_settings() or self.settings
            return Ok(self.data())

        posts, members, settings = await asyncio.gather(
            self.remote.fetch_posts(),
            self.remote.fetch_members(),
            self.remote.fetch_settings(),
            return_exceptions=True,
        )

        failed = []
        if isinstance(posts, BaseException):
            failed.append(("posts", posts))
        else:
            self.posts = posts
            self.snapshot.save_posts(posts)

        if isinstance(members, BaseException):
            failed.append(("members", members))
        else:
            self.members = members
            self.snapshot.save_members(members)

        if isinstance(settings, BaseException):
            failed.append(("settings", settings))
        else:
            self.settings = settings
            self.snapshot.save_settings(settings)

        for part, error in failed:
            logger.warning(f"Remote load of {part} failed: {error}")

        if len(failed) == 3:
            return Err(_as_client_error(failed[0][1]))
        return Ok(self.data())

    async def load_post_detail(self, post_id: str) -> Outcome:
        """Fetch the full post (content, attachments, comments) and merge it in"""
        if not self.remote_configured:
            post = aggregate.find_post(self.posts, post_id)
            return Ok(post) if post else Err(NotFoundError("Post", post_id))

        try:
            detail = await self.remote.fetch_post(post_id)
        except RemoteError as e:
            logger.warning(f"Post detail {post_id} not loaded: {e}")
            return Err(e)

        if detail is None:
            return Err(NotFoundError("Post", post_id))

        self.posts = aggregate.merge_detail(self.posts, detail)
        self.snapshot.save_posts(self.posts)
        return Ok(aggregate.find_post(self.posts, post_id))

    # ==========================================
    # Helpers
    # ==========================================

    async def _remote_write(self, what: str, call: Callable[[], Awaitable]) -> Outcome:
        if not self.remote_configured:
            return Ok()
        try:
            return Ok(await call())
        except RemoteError as e:
            logger.warning(f"Remote {what} failed, keeping local change: {e}")
            return Err(e)

    def _set_posts(self, posts: List[Post]) -> None:
        self.posts = posts
        self.snapshot.save_posts(posts)

    def _set_deleted(self, deleted: List[Post]) -> None:
        self.deleted_posts = deleted
        self.snapshot.save_deleted_posts(deleted)

    def _set_members(self, members: List[Member]) -> None:
        self.members = members
        self.snapshot.save_members(members)

    async def _save_post_remote(self, post_id: str) -> Outcome:
        post = aggregate.find_post(self.posts, post_id)
        outcome = await self._remote_write(f"save of post {post_id}", lambda: self.remote.save_post(post))
        return Ok(post) if outcome.ok else outcome

    async def _ensure_detail(self, post_id: str) -> Outcome:
        """Comments are written back whole, so they must be loaded first"""
        post = aggregate.find_post(self.posts, post_id)
        if post is None:
            return Err(NotFoundError("Post", post_id))
        if post.comments is not None or not self.remote_configured:
            return Ok(post)
        return await self.load_post_detail(post_id)

    # ==========================================
    # Posts
    # ==========================================

    async def save_post(self, post: Post) -> Outcome:
        """Create or replace a post"""
        self._set_posts(aggregate.upsert_post(self.posts, post))
        return await self._save_post_remote(post.id)

    async def delete_post(self, post_id: str) -> Outcome:
        """Soft delete: live collection -> local trash, then remote delete"""
        remaining, removed = aggregate.remove_post(self.posts, post_id)
        if removed is None:
            return Err(NotFoundError("Post", post_id))

        self.posts = remaining
        self.deleted_posts = [removed, *self.deleted_posts]
        self.snapshot.save_posts(remaining)
        self.snapshot.save_deleted_posts(self.deleted_posts)

        outcome = await self._remote_write(f"delete of post {post_id}", lambda: self.remote.delete_post(post_id))
        return Ok(removed) if outcome.ok else outcome

    async def restore_post(self, post_id: str) -> Outcome:
        """Move a post back from the trash and save it again remotely"""
        remaining, restored = aggregate.remove_post(self.deleted_posts, post_id)
        if restored is None:
            return Err(NotFoundError("Post", post_id))

        self._set_deleted(remaining)
        self._set_posts([restored, *self.posts])
        return await self._save_post_remote(post_id)

    def purge_post(self, post_id: str) -> Outcome:
        """Drop a post from the trash; the remote copy is already gone"""
        remaining, purged = aggregate.remove_post(self.deleted_posts, post_id)
        if purged is None:
            return Err(NotFoundError("Post", post_id))
        self._set_deleted(remaining)
        return Ok(purged)

    async def set_pinned(self, post_id: str, pinned: bool) -> Outcome:
        loaded = await self._ensure_detail(post_id)
        if isinstance(loaded, Err):
            return loaded
        self._set_posts(aggregate.set_pinned(self.posts, post_id, pinned, now_iso() if pinned else None))
        return await self._save_post_remote(post_id)

    def record_view(self, post_id: str) -> None:
        """
        Count a view: +1 locally now, remote increment in the background.

        Failures are ignored; view counts never block reading a post.
        """
        if aggregate.find_post(self.posts, post_id) is None:
            return
        self._set_posts(aggregate.increment_views(self.posts, post_id))

        if not self.remote_configured:
            return
        task = asyncio.ensure_future(self._send_view(post_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _send_view(self, post_id: str) -> None:
        try:
            await self.remote.increment_views(post_id)
        except RemoteError as e:
            logger.debug(f"View count for {post_id} not sent: {e}")

    async def wait_background(self) -> None:
        """Let pending background writes finish (shutdown, tests)"""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ==========================================
    # Comments
    # ==========================================

    async def _mutate_comments(self, post_id: str, change: Callable[[List[Post]], List[Post]]) -> Outcome:
        loaded = await self._ensure_detail(post_id)
        if isinstance(loaded, Err):
            return loaded
        self._set_posts(change(self.posts))
        return await self._save_post_remote(post_id)

    async def add_comment(self, post_id: str, comment: Comment, parent_id: Optional[str] = None) -> Outcome:
        return await self._mutate_comments(
            post_id,
            lambda posts: aggregate.add_comment(posts, post_id, comment, parent_id),
        )

    async def edit_comment(
        self,
        post_id: str,
        comment_id: str,
        content: str,
        parent_id: Optional[str] = None,
    ) -> Outcome:
        return await self._mutate_comments(
            post_id,
            lambda posts: aggregate.edit_comment(posts, post_id, comment_id, content, parent_id),
        )

    async def delete_comment(self, post_id: str, comment_id: str, parent_id: Optional[str] = None) -> Outcome:
        return await self._mutate_comments(
            post_id,
            lambda posts: aggregate.delete_comment(posts, post_id, comment_id, parent_id),
        )

    # ==========================================
    # Members
    # ==========================================

    async def register_member(self, member: Member, password: str) -> Outcome:
        """
        Signup. Remote first: the account and the application must both be
        created remotely before the member appears locally. The new account
        is signed out again since it is not approved yet.
        """
        if not self.remote_configured:
            return Err(NotConfiguredError())

        try:
            user = await self.remote.sign_up(member.email, password)
            registered = replace(member.public(), id=user["id"], is_approved=False)
            saved = await self.remote.save_member(registered)
        except RemoteError as e:
            logger.warning(f"Signup for {member.email} failed: {e}")
            return Err(e)
        finally:
            await self._sign_out_quietly()

        self._set_members(aggregate.add_member(self.members, saved))
        return Ok(saved)

    async def withdraw_member(self, member_id: str) -> Outcome:
        """Withdrawal. Remote first: local state changes only after the delete"""
        if not self.remote_configured:
            return Err(NotConfiguredError())

        try:
            await self.remote.delete_member(member_id)
        except RemoteError as e:
            logger.warning(f"Withdrawal of {member_id} failed: {e}")
            return Err(e)

        self._set_members(aggregate.remove_member(self.members, member_id))
        return Ok()

    async def approve_member(self, member_id: str) -> Outcome:
        if aggregate.find_member(self.members, member_id) is None:
            return Err(NotFoundError("Member", member_id))

        self._set_members(aggregate.approve_member(self.members, member_id))
        approved = aggregate.find_member(self.members, member_id)
        outcome = await self._remote_write(f"approval of {member_id}", lambda: self.remote.save_member(approved))
        return Ok(approved) if outcome.ok else outcome

    async def remove_member(self, member_id: str) -> Outcome:
        removed = aggregate.find_member(self.members, member_id)
        if removed is None:
            return Err(NotFoundError("Member", member_id))

        self._set_members(aggregate.remove_member(self.members, member_id))
        outcome = await self._remote_write(f"removal of {member_id}", lambda: self.remote.delete_member(member_id))
        return Ok(removed) if outcome.ok else outcome

    async def _sign_out_quietly(self) -> None:
        try:
            await self.remote.sign_out()
        except RemoteError as e:
            logger.debug(f"Sign out after signup ignored: {e}")

    # ==========================================
    # Settings
    # ==========================================

    async def update_settings(self, settings: SiteSettings) -> Outcome:
        self.settings = settings
        self.snapshot.save_settings(settings)
        outcome = await self._remote_write("settings save", lambda: self.remote.save_settings(settings))
        return Ok(settings) if outcome.ok else outcome


def _as_client_error(error: BaseException) -> ClientError:
    if isinstance(error, ClientError):
        return error
    return RemoteError(str(error))
