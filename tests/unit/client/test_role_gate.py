"""
Unit Tests for the role gate
"""
import pytest

from unionclient.models import BoardType, Post, UserRole
from unionclient.role_gate import (
    ADMIN_AUTHORED_BOARDS,
    ADMIN_ONLY_TABS,
    MEMBERS_ONLY_TABS,
    Action,
    BlockReason,
    Target,
    can_access,
    can_manage_comment,
    can_manage_post,
    password_matches,
    view_tab,
    write_post,
)

ALL_ROLES = list(UserRole)
ADMIN_ONLY_TARGETS = (
    [write_post(board) for board in sorted(ADMIN_AUTHORED_BOARDS)]
    + [view_tab(tab) for tab in sorted(ADMIN_ONLY_TABS)]
)
MEMBERS_ONLY_TARGETS = (
    [view_tab(tab) for tab in sorted(MEMBERS_ONLY_TABS)]
    + [Target(Action.POST_COMMENT), Target(Action.WITHDRAW), write_post('free')]
)


def make_post(**overrides) -> Post:
    fields = dict(
        id='p1',
        type=BoardType.FREE,
        title='제목',
        author='홍길동',
        created_at='2025-01-01T00:00:00Z',
    )
    fields.update(overrides)
    return Post(**fields)


class TestCanAccess:
    """Test the access decision table"""

    @pytest.mark.parametrize('role', ALL_ROLES)
    @pytest.mark.parametrize('target', ADMIN_ONLY_TARGETS)
    def test_admin_only_targets(self, role, target):
        """Admin-authored boards and the admin console are for admins only"""
        assert can_access(role, target).allowed == (role == UserRole.ADMIN)

    @pytest.mark.parametrize('role', ALL_ROLES)
    @pytest.mark.parametrize('target', MEMBERS_ONLY_TARGETS)
    def test_members_only_targets(self, role, target):
        """Members-only targets are refused only for guests"""
        assert (not can_access(role, target).allowed) == (role == UserRole.GUEST)

    def test_admin_board_reason(self):
        decision = can_access(UserRole.MEMBER, write_post('notice_all'))

        assert decision.reason == BlockReason.ADMIN_AUTH_REQUIRED

    def test_guest_reason(self):
        decision = can_access(UserRole.GUEST, view_tab('free'))

        assert decision.reason == BlockReason.APPROVAL_PENDING

    def test_guest_writing_admin_board_needs_admin(self):
        """Admin rule is checked before the members-only rule"""
        decision = can_access(UserRole.GUEST, write_post('resources'))

        assert decision.reason == BlockReason.ADMIN_AUTH_REQUIRED

    @pytest.mark.parametrize('tab', ['home', 'intro', 'notice', 'notice_all', 'family_events', 'signup'])
    def test_public_tabs_open_to_guests(self, tab):
        assert can_access(UserRole.GUEST, view_tab(tab)).allowed is True


class TestOwnership:
    """Test post and comment management rules"""

    def test_admin_manages_any_post(self):
        assert can_manage_post(UserRole.ADMIN, make_post(author_id='someone')) is True

    def test_guest_manages_nothing(self):
        assert can_manage_post(UserRole.GUEST, make_post(), user_name='홍길동') is False

    def test_member_by_author_id(self):
        post = make_post(author_id='u1')

        assert can_manage_post(UserRole.MEMBER, post, user_id='u1') is True
        assert can_manage_post(UserRole.MEMBER, post, user_id='u2', user_name='홍길동') is False

    def test_member_by_name_for_legacy_posts(self):
        post = make_post(author_id=None)

        assert can_manage_post(UserRole.MEMBER, post, user_id='u1', user_name='홍길동') is True

    def test_comment_ownership(self):
        assert can_manage_comment(UserRole.MEMBER, '홍길동', '홍길동') is True
        assert can_manage_comment(UserRole.MEMBER, '홍길동', '김철수') is False
        assert can_manage_comment(UserRole.ADMIN, '홍길동') is True
        assert can_manage_comment(UserRole.GUEST, '', '') is False


class TestPasswordMatches:
    """Test the legacy per-post password"""

    def test_admin_bypasses_password(self):
        assert password_matches(UserRole.ADMIN, make_post(password='1234'), None) is True

    def test_post_without_password(self):
        assert password_matches(UserRole.MEMBER, make_post(), None) is True

    def test_wrong_password(self):
        assert password_matches(UserRole.MEMBER, make_post(password='1234'), '0000') is False

    def test_right_password(self):
        assert password_matches(UserRole.MEMBER, make_post(password='1234'), '1234') is True
