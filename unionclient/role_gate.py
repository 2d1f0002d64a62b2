"""
Role gate - who may go where and do what.

`can_access` is a pure function of (role, target): it reads no session or
view state, so every navigation and write attempt can ask it first and act
on the decision (navigate, or open the matching modal).
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional

from unionclient.models import BoardType, Post, UserRole
from unionclient.navigation import ADMIN_TAB


class Action(str, Enum):
    VIEW_TAB = "view_tab"
    WRITE_POST = "write_post"
    POST_COMMENT = "post_comment"
    WITHDRAW = "withdraw"


class BlockReason(str, Enum):
    ADMIN_AUTH_REQUIRED = "admin-auth-required"
    APPROVAL_PENDING = "approval-pending"


@dataclass(frozen=True)
class Target:
    """What is being attempted; `board` is a tab or board type when relevant"""
    action: Action
    board: Optional[str] = None


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: Optional[BlockReason] = None


ALLOW = GateDecision(allowed=True)

# Only admins write here
ADMIN_AUTHORED_BOARDS: FrozenSet[str] = frozenset({
    BoardType.NOTICE_ALL.value,
    BoardType.FAMILY_EVENTS.value,
    BoardType.RESOURCES.value,
})

# Tabs behind the admin sign-in
ADMIN_ONLY_TABS: FrozenSet[str] = frozenset({ADMIN_TAB})

# Tabs hidden from guests
MEMBERS_ONLY_TABS: FrozenSet[str] = frozenset({
    BoardType.FREE.value,
    BoardType.RESOURCES.value,
})

# Actions that always need an approved member (or admin)
MEMBERS_ONLY_ACTIONS: FrozenSet[Action] = frozenset({
    Action.WRITE_POST,
    Action.POST_COMMENT,
    Action.WITHDRAW,
})


def view_tab(tab: str) -> Target:
    return Target(Action.VIEW_TAB, tab)


def write_post(board: str) -> Target:
    return Target(Action.WRITE_POST, board)


def is_admin_only(target: Target) -> bool:
    if target.action == Action.VIEW_TAB:
        return target.board in ADMIN_ONLY_TABS
    return target.action == Action.WRITE_POST and target.board in ADMIN_AUTHORED_BOARDS


def is_members_only(target: Target) -> bool:
    if target.action == Action.VIEW_TAB:
        return target.board in MEMBERS_ONLY_TABS
    return target.action in MEMBERS_ONLY_ACTIONS


def can_access(role: UserRole, target: Target) -> GateDecision:
    """
    Decide whether `role` may perform `target`.

    Rules, first match wins:
      1. writing to an admin-authored board, or opening the admin
         console, requires admin
      2. members-only tabs and actions reject guests
      3. everything else is allowed
    """
    if is_admin_only(target) and role != UserRole.ADMIN:
        return GateDecision(False, BlockReason.ADMIN_AUTH_REQUIRED)

    if is_members_only(target) and role == UserRole.GUEST:
        return GateDecision(False, BlockReason.APPROVAL_PENDING)

    return ALLOW


# ==========================================
# Ownership policies used by board screens
# ==========================================

def can_manage_post(
    role: UserRole,
    post: Post,
    user_id: Optional[str] = None,
    user_name: Optional[str] = None,
) -> bool:
    """Admins manage everything; members manage their own posts"""
    if role == UserRole.ADMIN:
        return True
    if role == UserRole.GUEST:
        return False
    # Older posts have no author id, fall back to the display name
    if post.author_id and user_id:
        return post.author_id == user_id
    return post.author == (user_name or "")


def can_manage_comment(role: UserRole, author: str, user_name: Optional[str] = None) -> bool:
    if role == UserRole.ADMIN:
        return True
    return role != UserRole.GUEST and author == (user_name or "")


def password_matches(role: UserRole, post: Post, password: Optional[str]) -> bool:
    """Legacy per-post password check; admins and password-less posts pass"""
    if role == UserRole.ADMIN or not post.password:
        return True
    return password == post.password
