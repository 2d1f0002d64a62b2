"""
Push notification dispatch

Builds the notification payload for each category, applies the admin quiet
hours window to new-post notifications, and fans out to stored
subscriptions through a transport. Subscriptions the push service reports
as gone (404/410) are deleted; callers commit.

Actual Web Push delivery (VAPID signing, encryption) is left to the
transport; the default one only logs.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from unionclient.navigation import NotificationCategory, deep_link
from unionsite.core.config import settings
from unionsite.core.exceptions import PushDeliveryError
from unionsite.core.logging_config import logger
from unionsite.models.member import Member
from unionsite.models.post import Post
from unionsite.models.push import PushSettings, PushSubscription, QUIET_HOURS_ROW_ID

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

NEW_POST_BODIES = {
    "notice_all": "공고/공지에 새 글이 등록되었습니다.",
    "family_events": "경조사 게시판에 새 글이 등록되었습니다.",
    "resources": "자료실에 새 자료가 업로드되었습니다.",
}
DEFAULT_NEW_POST_BODY = "자유게시판에 새 글이 등록되었습니다."


def normalize_time(value: Optional[str], fallback: str) -> str:
    """HH:MM (00:00-23:59), anything else falls back"""
    match = _TIME_RE.match(str(value or "").strip())
    if not match:
        return fallback
    return f"{match.group(1)}:{match.group(2)}"


def _to_minutes(value: str) -> Optional[int]:
    match = _TIME_RE.match(value or "")
    if not match:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


def in_quiet_hours(now_minutes: int, start: str, end: str) -> bool:
    """
    Whether `now_minutes` (minutes after midnight) falls in [start, end).

    The window wraps midnight when start > end; start == end means the
    whole day.
    """
    s = _to_minutes(start)
    e = _to_minutes(end)
    if s is None or e is None:
        return False
    if s == e:
        return True
    if s < e:
        return s <= now_minutes < e
    return now_minutes >= s or now_minutes < e


def _display_name(name: Optional[str], email: Optional[str], default: str) -> str:
    raw = name or email or default
    return raw.split("@")[0] if "@" in raw else raw


class PushTransport(Protocol):
    async def send(self, subscription: PushSubscription, payload: Dict[str, Any]) -> None:
        """Deliver one message; raise PushDeliveryError on rejection"""


class LoggingTransport:
    """Records what would be sent"""

    async def send(self, subscription: PushSubscription, payload: Dict[str, Any]) -> None:
        logger.debug(f"[Push] → {subscription.endpoint[:48]}: {payload.get('title')} / {payload.get('body')}")


class PushService:
    """Notification fan-out over stored subscriptions"""

    def __init__(self, transport: Optional[PushTransport] = None):
        self.transport = transport or LoggingTransport()

    # ---------- quiet hours ----------

    async def get_quiet_hours(self, db: AsyncSession) -> PushSettings:
        """The quiet-hours row, created with defaults on first use"""
        row = await db.get(PushSettings, QUIET_HOURS_ROW_ID)
        if row is None:
            row = PushSettings(
                id=QUIET_HOURS_ROW_ID,
                quiet_enabled=False,
                quiet_start=settings.PUSH_QUIET_START,
                quiet_end=settings.PUSH_QUIET_END,
            )
            db.add(row)
            await db.flush()
        return row

    async def update_quiet_hours(
        self,
        db: AsyncSession,
        quiet_enabled: Optional[bool] = None,
        quiet_start: Optional[str] = None,
        quiet_end: Optional[str] = None,
    ) -> PushSettings:
        row = await self.get_quiet_hours(db)
        if quiet_enabled is not None:
            row.quiet_enabled = bool(quiet_enabled)
        if quiet_start is not None:
            row.quiet_start = normalize_time(quiet_start, settings.PUSH_QUIET_START)
        if quiet_end is not None:
            row.quiet_end = normalize_time(quiet_end, settings.PUSH_QUIET_END)
        await db.flush()
        return row

    async def is_quiet_now(self, db: AsyncSession, now: Optional[datetime] = None) -> bool:
        row = await self.get_quiet_hours(db)
        if not row.quiet_enabled:
            return False
        local = now or datetime.now(ZoneInfo(settings.PUSH_TIMEZONE))
        return in_quiet_hours(local.hour * 60 + local.minute, row.quiet_start, row.quiet_end)

    # ---------- payloads ----------

    @staticmethod
    def new_post_payload(post: Post) -> Dict[str, Any]:
        board = post.type or "free"
        return {
            "title": settings.PUSH_TITLE,
            "body": NEW_POST_BODIES.get(board, DEFAULT_NEW_POST_BODY),
            "url": deep_link(NotificationCategory.NEW_POST, board=board, post_id=post.id),
            "tag": f"ourunion-{board}-new-post",
        }

    @staticmethod
    def admin_signup_payload(member: Member) -> Dict[str, Any]:
        name = _display_name(member.name, member.email, "신규 신청자")
        garage = f" ({member.garage})" if member.garage else ""
        return {
            "title": f"{settings.PUSH_TITLE} · 가입 신청",
            "body": f"{name}{garage} 회원이 가입 신청서를 제출했습니다.",
            "url": deep_link(NotificationCategory.ADMIN_SIGNUP),
            "tag": "admin-signup",
        }

    @staticmethod
    def admin_withdraw_payload(member: Member) -> Dict[str, Any]:
        name = _display_name(member.name, member.email, "회원")
        garage = f" ({member.garage})" if member.garage else ""
        return {
            "title": f"{settings.PUSH_TITLE} · 회원 탈퇴",
            "body": f"{name}{garage} 회원이 탈퇴하였습니다.",
            "url": deep_link(NotificationCategory.ADMIN_WITHDRAW),
            "tag": "admin-withdraw",
        }

    # ---------- dispatch ----------

    async def notify_new_post(
        self, db: AsyncSession, post: Post, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        category = NotificationCategory.NEW_POST.value
        if await self.is_quiet_now(db, now):
            logger.log_push_event(category, skipped="quiet_hours", post_id=post.id)
            return {"ok": True, "sent": 0, "failed": 0, "removed": 0, "skipped": "quiet_hours"}

        subscriptions = await self._subscriptions(db)
        return await self._fan_out(db, subscriptions, self.new_post_payload(post), category)

    async def notify_admin_signup(self, db: AsyncSession, member: Member) -> Dict[str, Any]:
        subscriptions = await self._subscriptions(db, admin_only=True)
        return await self._fan_out(
            db, subscriptions, self.admin_signup_payload(member), NotificationCategory.ADMIN_SIGNUP.value
        )

    async def notify_admin_withdraw(self, db: AsyncSession, member: Member) -> Dict[str, Any]:
        subscriptions = await self._subscriptions(db, admin_only=True)
        return await self._fan_out(
            db, subscriptions, self.admin_withdraw_payload(member), NotificationCategory.ADMIN_WITHDRAW.value
        )

    async def send_test(self, db: AsyncSession, message: str) -> Dict[str, Any]:
        subscriptions = await self._subscriptions(db)
        if not subscriptions:
            return {"ok": False, "sent": 0, "failed": 0, "removed": 0, "skipped": "no_subscriptions"}
        payload = {
            "title": settings.PUSH_TITLE,
            "body": message,
            "url": "/",
            "tag": "push-test",
        }
        return await self._fan_out(db, subscriptions, payload, "test")

    async def _subscriptions(self, db: AsyncSession, admin_only: bool = False) -> List[PushSubscription]:
        query = select(PushSubscription).order_by(PushSubscription.id)
        if admin_only:
            query = query.where(PushSubscription.is_admin.is_(True))
        result = await db.execute(query)
        return list(result.scalars().all())

    async def _fan_out(
        self,
        db: AsyncSession,
        subscriptions: List[PushSubscription],
        payload: Dict[str, Any],
        category: str,
    ) -> Dict[str, Any]:
        sent = 0
        failed = 0
        gone: List[str] = []

        for subscription in subscriptions:
            try:
                await self.transport.send(subscription, payload)
                sent += 1
            except PushDeliveryError as e:
                failed += 1
                if e.subscription_gone:
                    gone.append(subscription.endpoint)
                else:
                    logger.warning(f"[Push] delivery failed ({e.status}) for subscription {subscription.id}")

        for subscription in subscriptions:
            if subscription.endpoint in gone:
                await db.delete(subscription)

        logger.log_push_event(category, sent=sent, removed=len(gone), failed=failed)
        return {"ok": True, "sent": sent, "failed": failed, "removed": len(gone), "skipped": None}


push_service = PushService()
