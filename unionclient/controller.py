"""
Application controller

Wires the navigation, session and data layers together and implements the
user-facing flows. All feedback goes through a Notifier (message boxes and
yes/no confirmations), so the same flows drive the console front-end and the
tests.
"""

import logging
from typing import List, Optional, Protocol, Set

import httpx

from unionclient import aggregate
from unionclient.config import ClientConfig
from unionclient.errors import (
    ApprovalPendingError,
    NotConfiguredError,
    RemoteError,
    RemoteTimeoutError,
    ValidationError,
)
from unionclient.forms import SignupForm, validate_new_password
from unionclient.history import BrowserHistory, HistoryBridge
from unionclient.models import (
    Attachment,
    Comment,
    Member,
    Post,
    SiteSettings,
    UserRole,
    new_id,
    now_iso,
)
from unionclient.navigation import NavState
from unionclient.push import PushBootstrap, PushHost
from unionclient.reconcile import DataReconciler
from unionclient.remote import RemoteBackend
from unionclient.result import Err
from unionclient.role_gate import (
    Action,
    Target,
    can_access,
    can_manage_comment,
    can_manage_post,
    password_matches,
)
from unionclient.session import SessionManager
from unionclient.snapshot import LocalSnapshot
from unionclient.view_state import Modal, ViewStateStore

logger = logging.getLogger(__name__)

MSG_SAVED = "성공적으로 저장되었습니다."
MSG_DELETED = "삭제가 완료되었습니다."
MSG_RESTORED = "복구가 완료되었습니다."
MSG_PURGED = "영구삭제가 완료되었습니다."
MSG_DONE = "정상적으로 처리되었습니다."
MSG_PASSWORD_MISMATCH = "비밀번호가 일치하지 않습니다."
MSG_NO_PERMISSION = "권한이 없습니다."
MSG_SYNC_FAILED = "서버에 반영하지 못했습니다. 잠시 후 다시 시도해주세요."
MSG_ABORTED = (
    "네트워크 요청이 중단되었습니다. 잠시 후 다시 시도해주세요.\n"
    "(로그인 버튼은 한 번만 눌러주세요 / 와이파이·데이터 상태 확인)"
)
CONFIRM_DELETE = "정말 삭제하시겠습니까?"
CONFIRM_PURGE = "휴지통에서 영구삭제 하시겠습니까?"
CONFIRM_LOGOUT = "로그아웃 하시겠습니까?"


class Notifier(Protocol):
    def alert(self, message: str) -> None:
        ...

    def confirm(self, message: str) -> bool:
        ...


class AppController:
    """Top-level owner of the view state"""

    def __init__(
        self,
        config: ClientConfig,
        notifier: Notifier,
        history: Optional[BrowserHistory] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        push_host: Optional[PushHost] = None,
    ):
        self.config = config
        self.notifier = notifier

        self.snapshot = LocalSnapshot(config.data_dir)
        self.remote: Optional[RemoteBackend] = None
        if config.remote_configured:
            self.remote = RemoteBackend(config.api_base_url, timeout=config.timeout, transport=transport)

        self.session = SessionManager(self.snapshot, self.remote, admin_pin=config.admin_pin)
        self.data = DataReconciler(self.snapshot, self.remote)

        self.history = history or BrowserHistory()
        self.bridge = HistoryBridge(self.history)
        self.view = ViewStateStore(self.bridge, lambda: self.session.role, wide_viewport=config.wide_viewport)

        self.push = PushBootstrap.initialize(push_host or PushHost(), self.remote, self.session)
        self._in_flight: Set[str] = set()

    # ==========================================
    # Startup and browser navigation
    # ==========================================

    async def start(self) -> None:
        self.session.restore()
        outcome = await self.data.load_all()
        if isinstance(outcome, Err):
            logger.error(f"Initial data load failed: {outcome.error}")
        await self.session.revalidate()

        nav = self.view.initialize()
        self.bridge.listen(self.on_navigation)
        if nav.post_id and not nav.writing:
            await self.data.load_post_detail(nav.post_id)

        await self.push.auto_ensure_subscription()

    def on_navigation(self, nav: NavState) -> None:
        """popstate / hashchange: restore the screen as recorded"""
        self.view.apply_navigation(nav)

    async def shutdown(self) -> None:
        await self.data.wait_background()

    @property
    def role(self) -> UserRole:
        return self.session.role

    @property
    def posts(self) -> List[Post]:
        return self.data.posts

    def selected_post(self) -> Optional[Post]:
        post_id = self.view.state.selected_post_id
        return aggregate.find_post(self.data.posts, post_id) if post_id else None

    def board_posts(self, board: Optional[str] = None) -> List[Post]:
        return aggregate.sort_for_board(self.data.posts, board or self.view.state.active_tab)

    def _begin(self, action: str) -> bool:
        """Duplicate-submit guard; False while `action` is still running"""
        if action in self._in_flight:
            return False
        self._in_flight.add(action)
        return True

    def _end(self, action: str) -> None:
        self._in_flight.discard(action)

    def _report(self, outcome: Err, fallback: str = MSG_SYNC_FAILED) -> None:
        error = outcome.error
        if isinstance(error, RemoteTimeoutError):
            self.notifier.alert(MSG_ABORTED)
        elif isinstance(error, RemoteError) and not isinstance(error, NotConfiguredError):
            self.notifier.alert(fallback)
        else:
            self.notifier.alert(error.user_message)

    def _require_admin(self) -> bool:
        """Admin-console actions; anyone else is sent to the admin sign-in"""
        if self.role != UserRole.ADMIN:
            self.view.open_modal(Modal.ADMIN_LOGIN)
            return False
        return True

    # ==========================================
    # Tabs, posts, editor
    # ==========================================

    def change_tab(self, tab: str) -> bool:
        return self.view.change_tab(tab).allowed

    def write_click(self, board: Optional[str] = None) -> bool:
        return self.view.start_writing(board).allowed

    def edit_click(self, post: Post) -> bool:
        if not can_manage_post(self.role, post, self.session.user_id, self.session.display_name):
            self.notifier.alert(MSG_NO_PERMISSION)
            return False
        self.view.start_editing(post)
        return True

    def cancel_writing(self) -> None:
        self.view.cancel_writing()

    async def save_post(
        self,
        title: str,
        content: str,
        attachments: Optional[List[Attachment]] = None,
        password: Optional[str] = None,
        post_id: Optional[str] = None,
    ) -> Optional[Post]:
        if not title.strip():
            self.notifier.alert("제목을 입력해주세요.")
            return None

        attached = tuple(attachments) if attachments is not None else None
        existing = aggregate.find_post(self.data.posts, post_id) if post_id else None
        if existing is not None:
            post = existing.with_changes(
                title=title,
                content=content,
                attachments=attached,
                password=password or None,
            )
        else:
            post = Post(
                id=new_id(),
                type=self.view.resolve_writing_type(),
                title=title,
                content=content,
                author=self.session.display_name,
                author_id=self.session.user_id,
                created_at=now_iso(),
                views=0,
                attachments=attached,
                password=password or None,
                comments=(),
            )

        outcome = await self.data.save_post(post)
        if isinstance(outcome, Err):
            self._report(outcome)
        else:
            self.notifier.alert(MSG_SAVED)
        self.view.finish_writing()
        return post

    async def select_post(self, post_id: Optional[str], tab: Optional[str] = None) -> None:
        self.view.select_post(post_id, tab=tab)
        if post_id is None:
            return
        self.data.record_view(post_id)
        post = aggregate.find_post(self.data.posts, post_id)
        if post is None or not post.is_detail:
            await self.data.load_post_detail(post_id)

    async def view_post_from_admin(self, post_id: str, board: str) -> None:
        await self.select_post(post_id, tab=board)

    async def delete_post(self, post_id: str, password: Optional[str] = None) -> bool:
        post = aggregate.find_post(self.data.posts, post_id)
        if post is None:
            return False

        if self.role == UserRole.GUEST:
            self.view.open_modal(Modal.APPROVAL_PENDING)
            return False
        if not can_manage_post(self.role, post, self.session.user_id, self.session.display_name):
            self.notifier.alert(MSG_NO_PERMISSION)
            return False
        if not password_matches(self.role, post, password):
            self.notifier.alert(MSG_PASSWORD_MISMATCH)
            return False
        if not self.notifier.confirm(CONFIRM_DELETE):
            return False

        outcome = await self.data.delete_post(post_id)
        self.view.select_post(None)
        if isinstance(outcome, Err):
            self._report(outcome)
        else:
            self.notifier.alert(MSG_DELETED)
        return True

    async def restore_post(self, post_id: str) -> bool:
        if not self._require_admin():
            return False
        outcome = await self.data.restore_post(post_id)
        if isinstance(outcome, Err) and outcome.error.code == "POST_NOT_FOUND":
            return False
        if isinstance(outcome, Err):
            self._report(outcome)
        else:
            self.notifier.alert(MSG_RESTORED)
        return True

    def purge_post(self, post_id: str) -> bool:
        if not self._require_admin():
            return False
        if not self.notifier.confirm(CONFIRM_PURGE):
            return False
        outcome = self.data.purge_post(post_id)
        if isinstance(outcome, Err):
            return False
        self.notifier.alert(MSG_PURGED)
        return True

    async def toggle_pin(self, post_id: str) -> bool:
        if not self._require_admin():
            return False
        post = aggregate.find_post(self.data.posts, post_id)
        if post is None:
            return False
        outcome = await self.data.set_pinned(post_id, not post.pinned)
        if isinstance(outcome, Err):
            self._report(outcome)
        return True

    # ==========================================
    # Comments
    # ==========================================

    def _comment_allowed(self) -> bool:
        decision = can_access(self.role, Target(Action.POST_COMMENT))
        if not decision.allowed:
            self.view.open_modal(Modal.APPROVAL_PENDING)
        return decision.allowed

    def _find_comment(self, post_id: str, comment_id: str, parent_id: Optional[str]) -> Optional[Comment]:
        post = aggregate.find_post(self.data.posts, post_id)
        for c in (post.comments or ()) if post else ():
            if parent_id is None and c.id == comment_id:
                return c
            if parent_id is not None and c.id == parent_id:
                return next((r for r in c.replies if r.id == comment_id), None)
        return None

    async def add_comment(self, post_id: str, content: str, parent_id: Optional[str] = None) -> bool:
        if not self._comment_allowed():
            return False
        if not content.strip():
            self.notifier.alert("내용을 입력해주세요.")
            return False

        comment = Comment(
            id=new_id(),
            author=self.session.display_name,
            content=content,
            created_at=now_iso(),
        )
        outcome = await self.data.add_comment(post_id, comment, parent_id)
        if isinstance(outcome, Err):
            self._report(outcome)
        return True

    async def edit_comment(
        self,
        post_id: str,
        comment_id: str,
        content: str,
        parent_id: Optional[str] = None,
    ) -> bool:
        if self.role == UserRole.GUEST:
            return False
        comment = self._find_comment(post_id, comment_id, parent_id)
        if comment is None or not can_manage_comment(self.role, comment.author, self.session.display_name):
            self.notifier.alert(MSG_NO_PERMISSION)
            return False

        outcome = await self.data.edit_comment(post_id, comment_id, content, parent_id)
        if isinstance(outcome, Err):
            self._report(outcome)
        return True

    async def delete_comment(self, post_id: str, comment_id: str, parent_id: Optional[str] = None) -> bool:
        if self.role == UserRole.GUEST:
            return False
        comment = self._find_comment(post_id, comment_id, parent_id)
        if comment is None or not can_manage_comment(self.role, comment.author, self.session.display_name):
            self.notifier.alert(MSG_NO_PERMISSION)
            return False
        if not self.notifier.confirm(CONFIRM_DELETE):
            return False

        outcome = await self.data.delete_comment(post_id, comment_id, parent_id)
        if isinstance(outcome, Err):
            self._report(outcome)
        return True

    # ==========================================
    # Signup, login, password, withdrawal
    # ==========================================

    async def signup(self, form: SignupForm) -> bool:
        try:
            form.validate()
        except ValidationError as e:
            self.notifier.alert(e.user_message)
            return False

        member = Member(
            id="",
            name=form.name,
            birth_date=form.birth_date,
            phone=form.phone,
            email=form.email,
            garage=form.garage.strip(),
            signup_date=now_iso(),
            is_approved=False,
        )
        outcome = await self.data.register_member(member, form.password)
        if isinstance(outcome, Err):
            self._report(outcome, "가입 처리 중 오류가 발생했습니다.")
            return False
        return True

    async def admin_login(self) -> bool:
        form = self.view.state.form
        outcome = await self.session.login_admin(form.admin_password)
        if isinstance(outcome, Err):
            self._report(outcome)
            return False

        self.view.close_modal(Modal.ADMIN_LOGIN)
        form.admin_password = ""
        self.notifier.alert("관리자 모드로 접속되었습니다.")
        return True

    async def member_login(self) -> bool:
        if not self._begin("login"):
            return False
        try:
            form = self.view.state.form
            if not form.login_email:
                self.notifier.alert("이메일 주소를 입력해주세요.")
                return False
            if not form.login_password:
                self.notifier.alert("비밀번호를 입력해주세요.")
                return False

            outcome = await self.session.login_member(form.login_email, form.login_password)
            if isinstance(outcome, Err):
                if isinstance(outcome.error, ApprovalPendingError):
                    self.view.close_modal(Modal.MEMBER_LOGIN)
                    self.view.open_modal(Modal.APPROVAL_PENDING)
                else:
                    self._report(outcome, "로그인 중 오류가 발생했습니다.")
                return False

            self.view.close_modal(Modal.MEMBER_LOGIN)
            form.login_email = ""
            form.login_password = ""
            self.notifier.alert(f"{outcome.value.name}님, 환영합니다!")
            return True
        finally:
            self._end("login")

    def open_forgot_password(self) -> None:
        form = self.view.state.form
        form.forgot_email = form.login_email or ""
        self.view.open_modal(Modal.FORGOT_PASSWORD)

    async def send_reset_email(self) -> bool:
        if not self._begin("forgot_password"):
            return False
        try:
            form = self.view.state.form
            if not form.forgot_email:
                self.notifier.alert("이메일 주소를 입력해주세요.")
                return False
            if self.remote is None:
                self.notifier.alert("서버가 설정되지 않았습니다.")
                return False

            try:
                await self.remote.request_password_reset(form.forgot_email)
            except RemoteError as e:
                logger.warning(f"Password reset request failed: {e}")
                self.notifier.alert(e.user_message)
                return False

            self.notifier.alert(
                "입력하신 이메일로 비밀번호 재설정 링크를 발송했습니다.\n메일함(스팸함 포함)을 확인해주세요."
            )
            self.view.close_modal(Modal.FORGOT_PASSWORD)
            form.forgot_email = ""
            return True
        finally:
            self._end("forgot_password")

    async def update_password(self, reset_token: Optional[str] = None) -> bool:
        if not self._begin("update_password"):
            return False
        try:
            form = self.view.state.form
            try:
                validate_new_password(form.new_password, form.new_password_confirm)
            except ValidationError as e:
                self.notifier.alert(e.user_message)
                return False
            if self.remote is None:
                self.notifier.alert("서버가 설정되지 않았습니다.")
                return False

            try:
                await self.remote.update_password(form.new_password, reset_token=reset_token)
            except RemoteError as e:
                logger.warning(f"Password update failed: {e}")
                self.notifier.alert(e.user_message)
                return False

            self.notifier.alert("비밀번호가 변경되었습니다.\n보안을 위해 로그아웃 후 다시 로그인해 주세요.")
            await self.session.sign_out()
            self.view.close_modal(Modal.RESET_PASSWORD)
            form.new_password = ""
            form.new_password_confirm = ""
            self.view.open_modal(Modal.MEMBER_LOGIN)
            return True
        finally:
            self._end("update_password")

    async def logout(self) -> bool:
        if not self.notifier.confirm(CONFIRM_LOGOUT):
            return False
        await self.session.sign_out()
        self.view.reset()
        return True

    def request_withdraw(self) -> bool:
        decision = can_access(self.role, Target(Action.WITHDRAW))
        if not decision.allowed or self.role != UserRole.MEMBER or self.session.member is None:
            self.view.open_modal(Modal.APPROVAL_PENDING)
            return False
        self.view.state.form.withdraw_password = ""
        self.view.open_modal(Modal.WITHDRAW)
        return True

    async def confirm_withdraw(self) -> bool:
        if not self._begin("withdraw"):
            return False
        try:
            form = self.view.state.form
            if not form.withdraw_password:
                self.notifier.alert("비밀번호를 입력해주세요.")
                return False

            outcome = await self.session.reauthenticate(form.withdraw_password)
            if isinstance(outcome, Err):
                self._report(outcome, "회원 탈퇴 처리 중 오류가 발생했습니다.")
                return False

            outcome = await self.data.withdraw_member(self.session.user_id)
            if isinstance(outcome, Err):
                self._report(outcome, "회원 탈퇴 처리 중 오류가 발생했습니다.")
                return False

            await self.session.sign_out()
            self.view.close_modal(Modal.WITHDRAW)
            form.withdraw_password = ""
            self.view.change_tab("home")
            self.notifier.alert("회원 탈퇴가 완료되었습니다. 이용해 주셔서 감사합니다.")
            return True
        finally:
            self._end("withdraw")

    # ==========================================
    # Admin console
    # ==========================================

    async def approve_member(self, member_id: str) -> bool:
        if not self._require_admin():
            return False
        outcome = await self.data.approve_member(member_id)
        if isinstance(outcome, Err):
            if outcome.error.code == "MEMBER_NOT_FOUND":
                return False
            self._report(outcome)
            return True
        self.notifier.alert(f"{outcome.value.name}님의 가입이 승인되었습니다.")
        return True

    async def remove_member(self, member_id: str) -> bool:
        if not self._require_admin():
            return False
        member = aggregate.find_member(self.data.members, member_id)
        if member is None:
            return False
        if not self.notifier.confirm(f"{member.name} 조합원을 강제 탈퇴 처리하시겠습니까?"):
            return False

        outcome = await self.data.remove_member(member_id)
        if isinstance(outcome, Err):
            self._report(outcome)
        else:
            self.notifier.alert(MSG_DONE)
        return True

    async def update_settings(self, settings: SiteSettings) -> bool:
        if not self._require_admin():
            return False
        outcome = await self.data.update_settings(settings)
        if isinstance(outcome, Err):
            self._report(outcome)
        return True

    async def enable_notifications(self) -> bool:
        outcome = await self.push.enable_notifications()
        if isinstance(outcome, Err):
            self._report(outcome)
            return False
        self.notifier.alert("알림이 설정되었습니다.")
        return True
