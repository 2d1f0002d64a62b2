"""
View-state store

Holds what the user is looking at (tab, selected post, writing mode, modal
flags, modal form fields) and the transitions between those screens. User
actions go through the role gate; browser navigation events restore state
directly from the NavState without re-checking the role.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional

from unionclient.history import HistoryBridge
from unionclient.models import BoardType, Post, UserRole
from unionclient.navigation import DEFAULT_TAB, NavState
from unionclient.role_gate import (
    ALLOW,
    BlockReason,
    GateDecision,
    can_access,
    view_tab,
    write_post,
)

logger = logging.getLogger(__name__)

NOTICE_TAB = "notice"


class Modal(str, Enum):
    ADMIN_LOGIN = "admin_login"
    MEMBER_LOGIN = "member_login"
    APPROVAL_PENDING = "approval_pending"
    WITHDRAW = "withdraw"
    FORGOT_PASSWORD = "forgot_password"
    RESET_PASSWORD = "reset_password"


BLOCK_MODALS = {
    BlockReason.ADMIN_AUTH_REQUIRED: Modal.ADMIN_LOGIN,
    BlockReason.APPROVAL_PENDING: Modal.APPROVAL_PENDING,
}


class Mode(str, Enum):
    BROWSING = "browsing"
    WRITING = "writing"
    VIEWING_DETAIL = "viewing-detail"


@dataclass
class FormFields:
    """Transient values typed into the modals"""
    admin_password: str = ""
    login_email: str = ""
    login_password: str = ""
    withdraw_password: str = ""
    forgot_email: str = ""
    new_password: str = ""
    new_password_confirm: str = ""


@dataclass
class ViewState:
    active_tab: str = DEFAULT_TAB
    is_writing: bool = False
    writing_type: Optional[BoardType] = None
    editing_post: Optional[Post] = None
    selected_post_id: Optional[str] = None
    modals: Dict[Modal, bool] = field(default_factory=lambda: {m: False for m in Modal})
    form: FormFields = field(default_factory=FormFields)

    @property
    def mode(self) -> Mode:
        if self.is_writing:
            return Mode.WRITING
        if self.selected_post_id:
            return Mode.VIEWING_DETAIL
        return Mode.BROWSING

    def nav_state(self) -> NavState:
        return NavState(
            tab=self.active_tab,
            post_id=None if self.is_writing else self.selected_post_id,
            writing=self.is_writing,
        )


def normalize_board(board: str) -> str:
    """The parent "notice" tab writes into its first child board"""
    return BoardType.NOTICE_ALL.value if board == NOTICE_TAB else board


def board_type_for(value: str) -> Optional[BoardType]:
    try:
        return BoardType(value)
    except ValueError:
        return None


class ViewStateStore:
    """
    State machine for the visible screen.

    `role` is read through a callable so the store always sees the session's
    current role without owning it.
    """

    def __init__(
        self,
        bridge: HistoryBridge,
        role: Callable[[], UserRole],
        wide_viewport: bool = True,
    ):
        self.bridge = bridge
        self._role = role
        self.wide_viewport = wide_viewport
        self.state = ViewState()

    @property
    def role(self) -> UserRole:
        return self._role()

    # ---------- modals ----------

    def open_modal(self, modal: Modal) -> None:
        self.state.modals[modal] = True

    def close_modal(self, modal: Modal) -> None:
        self.state.modals[modal] = False

    def is_open(self, modal: Modal) -> bool:
        return self.state.modals[modal]

    def _block(self, decision: GateDecision) -> GateDecision:
        self.open_modal(BLOCK_MODALS[decision.reason])
        return decision

    # ---------- user transitions ----------

    def change_tab(self, tab: str) -> GateDecision:
        next_tab = tab
        if self.wide_viewport and next_tab == NOTICE_TAB:
            next_tab = BoardType.NOTICE_ALL.value

        decision = can_access(self.role, view_tab(next_tab))
        if not decision.allowed:
            logger.debug(f"tab {next_tab} blocked: {decision.reason}")
            return self._block(decision)

        s = self.state
        s.active_tab = next_tab
        s.is_writing = False
        s.writing_type = None
        s.editing_post = None
        s.selected_post_id = None
        self.bridge.push(NavState(tab=next_tab))
        return ALLOW

    def start_writing(self, board: Optional[str] = None) -> GateDecision:
        target = normalize_board(board or self.state.active_tab)

        decision = can_access(self.role, write_post(target))
        if not decision.allowed:
            return self._block(decision)

        s = self.state
        s.writing_type = board_type_for(target)
        s.is_writing = True
        s.selected_post_id = None
        self.bridge.push(NavState(tab=s.active_tab, writing=True))
        return ALLOW

    def start_editing(self, post: Post) -> None:
        """Caller has already checked the user may manage `post`"""
        s = self.state
        s.editing_post = post
        s.writing_type = post.type
        s.is_writing = True
        s.selected_post_id = None
        self.bridge.push(NavState(tab=s.active_tab, writing=True))

    def finish_writing(self) -> None:
        """Leave the editor, back to the board list"""
        s = self.state
        s.is_writing = False
        s.editing_post = None
        self.bridge.push(NavState(tab=s.active_tab))

    cancel_writing = finish_writing

    def select_post(self, post_id: Optional[str], tab: Optional[str] = None) -> None:
        s = self.state
        if tab is not None:
            s.active_tab = tab
        if post_id is not None:
            s.is_writing = False
            s.editing_post = None
        s.selected_post_id = post_id
        self.bridge.push(NavState(tab=s.active_tab, post_id=post_id))

    def resolve_writing_type(self) -> BoardType:
        """Board a new post goes to"""
        if self.state.writing_type is not None:
            return self.state.writing_type
        return board_type_for(normalize_board(self.state.active_tab)) or BoardType.FREE

    # ---------- navigation events ----------

    def apply_navigation(self, nav: NavState) -> None:
        """Restore the screen for a popstate/hashchange; no role check"""
        s = self.state
        s.active_tab = nav.tab or DEFAULT_TAB
        s.editing_post = None
        if nav.writing:
            s.is_writing = True
            s.selected_post_id = None
        elif nav.post_id:
            s.is_writing = False
            s.selected_post_id = nav.post_id
        else:
            s.is_writing = False
            s.selected_post_id = None

    def initialize(self) -> NavState:
        """Restore from the current URL, then pin that state to the entry"""
        nav = self.bridge.current()
        s = self.state
        s.active_tab = nav.tab or DEFAULT_TAB
        if nav.writing:
            # Writing wins over a post id in the same fragment
            s.is_writing = True
            s.selected_post_id = None
        elif nav.post_id:
            s.selected_post_id = nav.post_id

        restored = NavState(
            tab=s.active_tab,
            post_id=nav.post_id,
            writing=nav.writing,
        )
        self.bridge.replace(restored)
        return restored

    def reset(self) -> None:
        """Back to the home screen with everything closed (logout)"""
        self.state = ViewState()
        self.bridge.push(NavState(tab=DEFAULT_TAB))
