"""
Session Manager - who is signed in

Keeps the current role, the admin flag, the logged-in member (never with a
password) and the access token, and persists them next to the data
snapshot so a restart keeps the user signed in.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from unionclient.errors import (
    ApprovalPendingError,
    AuthorizationError,
    NotConfiguredError,
    RemoteError,
)
from unionclient.models import (
    ADMIN_DISPLAY_NAME,
    MEMBER_DISPLAY_NAME,
    Member,
    UserRole,
)
from unionclient.remote import RemoteBackend
from unionclient.result import Err, Ok, Outcome
from unionclient.snapshot import LocalSnapshot

logger = logging.getLogger(__name__)

ROLE_KEY = "role"
ADMIN_KEY = "is_admin"
MEMBER_KEY = "member"
TOKEN_KEY = "token"


@dataclass
class SessionState:
    role: UserRole = UserRole.GUEST
    is_admin_auth: bool = False
    member: Optional[Member] = None
    access_token: Optional[str] = None


class SessionManager:
    """Persisted sign-in state"""

    def __init__(
        self,
        snapshot: LocalSnapshot,
        remote: Optional[RemoteBackend] = None,
        admin_pin: str = "1229",
    ):
        self.snapshot = snapshot
        self.remote = remote
        self.admin_pin = admin_pin
        self.state = SessionState()

    @property
    def role(self) -> UserRole:
        return self.state.role

    @property
    def member(self) -> Optional[Member]:
        return self.state.member

    @property
    def user_id(self) -> Optional[str]:
        return self.state.member.id if self.state.member else None

    @property
    def display_name(self) -> str:
        """Name written on new posts and comments"""
        if self.state.role == UserRole.ADMIN:
            return ADMIN_DISPLAY_NAME
        if self.state.member:
            return self.state.member.name
        return MEMBER_DISPLAY_NAME

    # ---------- persistence ----------

    def restore(self) -> SessionState:
        role = self.snapshot.load(ROLE_KEY)
        try:
            self.state.role = UserRole(role) if role else UserRole.GUEST
        except ValueError:
            self.state.role = UserRole.GUEST

        self.state.is_admin_auth = self.snapshot.load(ADMIN_KEY) is True

        member = self.snapshot.load(MEMBER_KEY)
        try:
            self.state.member = Member.from_dict(member) if member else None
        except (KeyError, TypeError):
            self.state.member = None

        self.state.access_token = self.snapshot.load(TOKEN_KEY)
        if self.remote is not None:
            self.remote.access_token = self.state.access_token
        return self.state

    def _persist(self) -> None:
        s = self.state
        self.snapshot.save(ROLE_KEY, s.role.value)
        if s.is_admin_auth:
            self.snapshot.save(ADMIN_KEY, True)
        else:
            self.snapshot.remove(ADMIN_KEY)
        if s.member:
            self.snapshot.save(MEMBER_KEY, s.member.public().to_dict())
        else:
            self.snapshot.remove(MEMBER_KEY)
        if s.access_token:
            self.snapshot.save(TOKEN_KEY, s.access_token)
        else:
            self.snapshot.remove(TOKEN_KEY)

    def clear(self) -> None:
        """Back to guest, locally"""
        self.state = SessionState()
        for key in (ROLE_KEY, ADMIN_KEY, MEMBER_KEY, TOKEN_KEY):
            self.snapshot.remove(key)

    def _token(self) -> Optional[str]:
        return self.remote.access_token if self.remote is not None else None

    def become_member(self, member: Member) -> None:
        self.state = SessionState(
            role=UserRole.MEMBER,
            member=member.public(),
            access_token=self._token(),
        )
        self._persist()

    def become_admin(self) -> None:
        self.state = SessionState(
            role=UserRole.ADMIN,
            is_admin_auth=True,
            member=self.state.member,
            access_token=self._token(),
        )
        self._persist()

    # ---------- remote flows ----------

    async def revalidate(self) -> SessionState:
        """
        Check a restored member session against the backend.

        A missing or unapproved profile signs the user out. Network failures
        keep the restored session.
        """
        if self.remote is None or self.state.role != UserRole.MEMBER:
            return self.state

        try:
            user = await self.remote.get_session()
            profile = await self.remote.fetch_member(user["id"]) if user else None
        except RemoteError as e:
            logger.info(f"Session not re-validated: {e}")
            return self.state

        if profile is None or not profile.is_approved:
            logger.info("Stored session no longer valid, signing out")
            await self.sign_out()
            return self.state

        self.become_member(profile)
        return self.state

    async def login_member(self, email: str, password: str) -> Outcome:
        if self.remote is None:
            return Err(NotConfiguredError())

        try:
            user = await self.remote.sign_in(email, password)
            profile = await self.remote.fetch_member(user["id"])
        except RemoteError as e:
            if e.status_code == 401:
                return Err(AuthorizationError("이메일 또는 비밀번호가 올바르지 않습니다."))
            return Err(e)

        # Signed in, but no approved application: back out immediately
        if profile is None or not profile.is_approved:
            await self.sign_out()
            return Err(ApprovalPendingError())

        self.become_member(profile)
        return Ok(profile)

    async def login_admin(self, pin: str) -> Outcome:
        if self.remote is None:
            if pin != self.admin_pin:
                return Err(AuthorizationError("비밀번호가 일치하지 않습니다."))
            self.become_admin()
            return Ok()

        try:
            await self.remote.sign_in_admin(pin)
        except RemoteError as e:
            if e.status_code in (401, 403):
                return Err(AuthorizationError("비밀번호가 일치하지 않습니다."))
            return Err(e)

        self.become_admin()
        return Ok()

    async def reauthenticate(self, password: str) -> Outcome:
        """Confirm the member's password again before a destructive action"""
        if self.remote is None:
            return Err(NotConfiguredError())
        member = self.state.member
        if member is None or not member.email:
            return Err(AuthorizationError("로그인 정보를 확인할 수 없습니다."))

        try:
            await self.remote.sign_in(member.email, password)
        except RemoteError as e:
            if e.status_code == 401:
                return Err(AuthorizationError("비밀번호가 일치하지 않습니다."))
            return Err(e)

        self.state.access_token = self._token()
        self._persist()
        return Ok()

    async def sign_out(self) -> None:
        if self.remote is not None:
            try:
                await self.remote.sign_out()
            except RemoteError as e:
                logger.debug(f"Remote sign out ignored: {e}")
        self.clear()
