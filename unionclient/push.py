"""
Push notification bootstrap

Subscribing the device and registering the subscription with the backend.
Delivery itself belongs to the browser's push service and is not handled
here.

The "automatic re-subscribe already attempted" flag is process-wide. It
lives on the single PushBootstrap instance created by
`PushBootstrap.initialize()`; the flag is set once and never cleared. The
device (host) is process-wide too, while the session and backend follow
the controller that called `initialize()` last.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from unionclient.errors import AuthorizationError, ClientError, NotConfiguredError, RemoteError
from unionclient.models import UserRole
from unionclient.remote import RemoteBackend
from unionclient.result import Err, Ok, Outcome
from unionclient.session import SessionManager

logger = logging.getLogger(__name__)


class Permission(str, Enum):
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


@dataclass
class PushSubscription:
    endpoint: str
    p256dh: str
    auth: str

    def to_dict(self) -> Dict[str, Any]:
        return {"endpoint": self.endpoint, "keys": {"p256dh": self.p256dh, "auth": self.auth}}


class PushHost:
    """
    The host's notification capability (permission prompt and the push
    manager's subscription). The default host keeps everything in memory.
    """

    supported = True

    def __init__(self, permission: Permission = Permission.DEFAULT, grant_on_request: bool = True):
        self.permission = permission
        self.grant_on_request = grant_on_request
        self.subscription: Optional[PushSubscription] = None

    async def request_permission(self) -> Permission:
        if self.permission == Permission.DEFAULT:
            self.permission = Permission.GRANTED if self.grant_on_request else Permission.DENIED
        return self.permission

    async def subscribe(self) -> PushSubscription:
        if self.subscription is None:
            token = uuid.uuid4().hex
            self.subscription = PushSubscription(
                endpoint=f"https://push.invalid/{token}",
                p256dh=token,
                auth=token[:16],
            )
        return self.subscription

    async def unsubscribe(self) -> Optional[PushSubscription]:
        existing, self.subscription = self.subscription, None
        return existing


class PushBootstrap:
    """Process-wide push subscription state"""

    _instance: Optional["PushBootstrap"] = None

    def __init__(self, host: PushHost, remote: Optional[RemoteBackend], session: SessionManager):
        self.host = host
        self.remote = remote
        self.session = session
        self.auto_ensure_attempted = False

    @classmethod
    def initialize(
        cls,
        host: PushHost,
        remote: Optional[RemoteBackend],
        session: SessionManager,
    ) -> "PushBootstrap":
        """
        Create the bootstrap on first call; later calls return the same one,
        bound to the caller's backend and session.
        """
        if cls._instance is None:
            cls._instance = cls(host, remote, session)
        else:
            cls._instance.remote = remote
            cls._instance.session = session
        return cls._instance

    async def ensure_subscribed(self, silent: bool = False, require_auth: bool = False) -> Dict[str, Any]:
        """Subscribe the device and register it; raises ClientError on failure"""
        if not self.host.supported:
            raise ClientError("이 기기는 푸시 알림을 지원하지 않습니다.")
        if self.remote is None:
            raise NotConfiguredError()

        if self.host.permission != Permission.GRANTED:
            if silent:
                raise ClientError("notification permission not granted (silent)")
            if await self.host.request_permission() != Permission.GRANTED:
                raise AuthorizationError("알림 권한이 허용되지 않았습니다.")

        if require_auth and not self.remote.access_token:
            raise AuthorizationError("로그인 상태를 확인할 수 없어 알림 설정을 진행할 수 없습니다.")

        subscription = await self.host.subscribe()
        return await self.remote.push_subscribe(subscription.to_dict())

    async def enable_notifications(self) -> Outcome:
        """User-initiated opt-in; members and admins only"""
        if self.session.role == UserRole.GUEST:
            return Err(AuthorizationError("로그인한 조합원만 알림을 설정할 수 있습니다."))
        try:
            return Ok(await self.ensure_subscribed(require_auth=True))
        except ClientError as e:
            logger.warning(f"Enabling notifications failed: {e}")
            return Err(e)

    async def auto_ensure_subscription(self) -> bool:
        """
        Re-register an existing permission at startup, at most once per
        process. Never prompts and never reports failure.
        """
        if self.auto_ensure_attempted:
            return False
        self.auto_ensure_attempted = True

        if self.host.permission != Permission.GRANTED:
            return False
        try:
            await self.ensure_subscribed(silent=True)
        except ClientError as e:
            logger.debug(f"auto push subscription skipped: {e}")
            return False
        return True

    async def disable_notifications(self) -> bool:
        subscription = await self.host.unsubscribe()
        if subscription is None or self.remote is None:
            return True
        try:
            await self.remote.push_unsubscribe(subscription.endpoint)
        except RemoteError as e:
            logger.debug(f"push unsubscribe not recorded remotely: {e}")
        return True
