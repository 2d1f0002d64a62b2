"""
Unit Tests for push notification dispatch
"""
from datetime import datetime

import pytest
from sqlalchemy import select

from unionsite.models.member import Member
from unionsite.models.post import Post
from unionsite.models.push import PushSubscription
from unionsite.services.push_service import (
    DEFAULT_NEW_POST_BODY,
    PushService,
    in_quiet_hours,
    normalize_time,
    push_service,
)


def minutes(hhmm: str) -> int:
    hours, mins = hhmm.split(':')
    return int(hours) * 60 + int(mins)


class TestQuietHoursWindow:
    """Test the quiet-hours arithmetic"""

    @pytest.mark.parametrize('now, expected', [
        ('21:59', False),
        ('22:00', True),
        ('23:30', True),
        ('00:00', True),
        ('08:59', True),
        ('09:00', False),
        ('12:00', False),
    ])
    def test_window_wrapping_midnight(self, now, expected):
        assert in_quiet_hours(minutes(now), '22:00', '09:00') is expected

    @pytest.mark.parametrize('now, expected', [
        ('12:59', False),
        ('13:00', True),
        ('13:59', True),
        ('14:00', False),
    ])
    def test_same_day_window(self, now, expected):
        assert in_quiet_hours(minutes(now), '13:00', '14:00') is expected

    def test_equal_bounds_mean_all_day(self):
        assert in_quiet_hours(minutes('15:00'), '07:00', '07:00') is True

    def test_invalid_bounds_never_quiet(self):
        assert in_quiet_hours(minutes('23:00'), 'late', '09:00') is False

    @pytest.mark.parametrize('value, expected', [
        ('07:30', '07:30'),
        (' 23:59 ', '23:59'),
        ('7:30', '22:00'),
        ('24:00', '22:00'),
        ('12:60', '22:00'),
        (None, '22:00'),
        ('', '22:00'),
    ])
    def test_normalize_time(self, value, expected):
        assert normalize_time(value, '22:00') == expected


class TestPayloads:
    """Test notification texts and links"""

    def test_new_notice_payload(self):
        payload = PushService.new_post_payload(Post(id='p1', type='notice_all'))

        assert payload['body'] == '공고/공지에 새 글이 등록되었습니다.'
        assert payload['url'] == '/#tab=notice_all&post=p1'
        assert payload['tag'] == 'ourunion-notice_all-new-post'

    def test_free_board_uses_default_body(self):
        payload = PushService.new_post_payload(Post(id='p2', type='free'))

        assert payload['body'] == DEFAULT_NEW_POST_BODY
        assert payload['url'] == '/#tab=free&post=p2'

    def test_signup_payload_uses_email_prefix_without_name(self):
        payload = PushService.admin_signup_payload(Member(name='', email='kim@example.com', garage='도봉'))

        assert payload['body'] == 'kim (도봉) 회원이 가입 신청서를 제출했습니다.'
        assert payload['url'] == '/#tab=admin'
        assert payload['tag'] == 'admin-signup'

    def test_withdraw_payload(self):
        payload = PushService.admin_withdraw_payload(Member(name='박조합', email='p@example.com', garage=''))

        assert payload['body'] == '박조합 회원이 탈퇴하였습니다.'
        assert payload['tag'] == 'admin-withdraw'


class TestFanOut:
    """Test delivery over stored subscriptions"""

    @pytest.fixture
    async def subscriptions(self, db_session):
        rows = [
            PushSubscription(endpoint=f'https://push.invalid/{name}', p256dh='k', auth='a', is_admin=admin)
            for name, admin in [('ok', False), ('gone', False), ('flaky', True)]
        ]
        db_session.add_all(rows)
        await db_session.commit()
        return rows

    async def test_gone_subscription_removed(self, db_session, subscriptions, push_transport):
        push_transport.reject = {
            'https://push.invalid/gone': 410,
            'https://push.invalid/flaky': 503,
        }

        result = await push_service.notify_new_post(db_session, Post(id='p1', type='free'))
        await db_session.commit()

        assert result == {'ok': True, 'sent': 1, 'failed': 2, 'removed': 1, 'skipped': None}
        remaining = (await db_session.execute(select(PushSubscription.endpoint))).scalars().all()
        assert sorted(remaining) == ['https://push.invalid/flaky', 'https://push.invalid/ok']

    async def test_admin_notifications_only_reach_admins(self, db_session, subscriptions, push_transport):
        result = await push_service.notify_admin_signup(db_session, Member(name='신입', email='n@example.com'))

        assert result['sent'] == 1
        assert [endpoint for endpoint, _ in push_transport.sent] == ['https://push.invalid/flaky']

    async def test_quiet_hours_skip_new_posts(self, db_session, subscriptions, push_transport):
        await push_service.update_quiet_hours(db_session, True, '22:00', '09:00')

        result = await push_service.notify_new_post(
            db_session, Post(id='p1', type='free'), now=datetime(2026, 1, 1, 23, 15)
        )

        assert result['skipped'] == 'quiet_hours'
        assert push_transport.sent == []

    async def test_outside_quiet_hours_delivers(self, db_session, subscriptions, push_transport):
        await push_service.update_quiet_hours(db_session, True, '22:00', '09:00')

        result = await push_service.notify_new_post(
            db_session, Post(id='p1', type='free'), now=datetime(2026, 1, 1, 12, 0)
        )

        assert result['sent'] == 3

    async def test_quiet_hours_do_not_hold_admin_alerts(self, db_session, subscriptions, push_transport):
        await push_service.update_quiet_hours(db_session, True, '00:00', '00:00')

        result = await push_service.notify_admin_withdraw(db_session, Member(name='탈퇴자', email='t@example.com'))

        assert result['sent'] == 1

    async def test_quiet_hours_defaults_created_once(self, db_session):
        first = await push_service.get_quiet_hours(db_session)
        second = await push_service.get_quiet_hours(db_session)

        assert first is second
        assert first.quiet_enabled is False
        assert (first.quiet_start, first.quiet_end) == ('22:00', '09:00')

    async def test_test_message_without_subscriptions(self, db_session):
        result = await push_service.send_test(db_session, 'hi')

        assert result['ok'] is False
        assert result['skipped'] == 'no_subscriptions'
