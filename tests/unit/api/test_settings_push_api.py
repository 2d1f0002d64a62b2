"""
Unit Tests for Settings, Push and Health Endpoints
"""
import pytest
from httpx import AsyncClient

DEVICE = 'https://push.invalid/new-device'


def subscription(endpoint: str = DEVICE, **overrides) -> dict:
    body = {
        'endpoint': endpoint,
        'keys': {'p256dh': 'device-key', 'auth': 'device-auth'},
        'is_pwa': True,
        'display_mode': 'standalone',
        'platform': 'android',
    }
    body.update(overrides)
    return body


class TestSiteSettings:
    """Test the settings document"""

    @pytest.mark.asyncio
    async def test_empty_before_first_save(self, client: AsyncClient, db_session):
        response = await client.get('/api/v1/settings')

        assert response.status_code == 200
        assert response.json() == {}

    @pytest.mark.asyncio
    async def test_member_cannot_save(self, client: AsyncClient, auth_headers):
        response = await client.put('/api/v1/settings', json={'siteName': 'x'}, headers=auth_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_saves_merge(self, client: AsyncClient, admin_headers):
        await client.put('/api/v1/settings', json={'siteName': '우리노조', 'slogan': '함께'}, headers=admin_headers)

        response = await client.put('/api/v1/settings', json={'slogan': '끝까지'}, headers=admin_headers)
        stored = await client.get('/api/v1/settings')

        assert response.json() == {'siteName': '우리노조', 'slogan': '끝까지'}
        assert stored.json() == response.json()


class TestSubscriptions:
    """Test subscribe, status and unsubscribe"""

    @pytest.mark.asyncio
    async def test_anonymous_subscribe(self, client: AsyncClient, db_session):
        response = await client.post('/api/v1/push/subscribe', json=subscription())
        status = await client.get('/api/v1/push/status', params={'endpoint': DEVICE})

        assert response.json() == {'ok': True, 'is_admin': False}
        row = status.json()['row']
        assert status.json()['exists'] is True
        assert row['platform'] == 'android'
        assert row['is_pwa'] is True

    @pytest.mark.asyncio
    async def test_admin_subscription_flagged(self, client: AsyncClient, admin_headers):
        response = await client.post('/api/v1/push/subscribe', json=subscription(), headers=admin_headers)

        assert response.json()['is_admin'] is True

    @pytest.mark.asyncio
    async def test_resubscribe_updates_in_place(self, client: AsyncClient, member_user, auth_headers):
        await client.post('/api/v1/push/subscribe', json=subscription())
        await client.post('/api/v1/push/subscribe', json=subscription(platform='ios'), headers=auth_headers)

        row = (await client.get('/api/v1/push/status', params={'endpoint': DEVICE})).json()['row']

        assert row['platform'] == 'ios'
        assert row['email'] == member_user.email

    @pytest.mark.asyncio
    async def test_unsubscribe(self, client: AsyncClient, db_session):
        await client.post('/api/v1/push/subscribe', json=subscription())

        first = await client.post('/api/v1/push/unsubscribe', json={'endpoint': DEVICE})
        second = await client.post('/api/v1/push/unsubscribe', json={'endpoint': DEVICE})
        status = await client.get('/api/v1/push/status', params={'endpoint': DEVICE})

        assert first.json() == {'ok': True, 'removed': True}
        assert second.json()['removed'] is False
        assert status.json() == {'ok': True, 'exists': False, 'row': None}

    @pytest.mark.asyncio
    async def test_status_requires_endpoint(self, client: AsyncClient, db_session):
        response = await client.get('/api/v1/push/status')

        assert response.status_code == 422


class TestQuietHoursApi:
    """Test the admin quiet-hours window"""

    @pytest.mark.asyncio
    async def test_defaults(self, client: AsyncClient, admin_headers):
        response = await client.get('/api/v1/push/quiet-hours', headers=admin_headers)

        assert response.json() == {'quiet_enabled': False, 'quiet_start': '22:00', 'quiet_end': '09:00'}

    @pytest.mark.asyncio
    async def test_members_cannot_read(self, client: AsyncClient, auth_headers):
        response = await client.get('/api/v1/push/quiet-hours', headers=auth_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_update_normalizes_times(self, client: AsyncClient, admin_headers):
        response = await client.post(
            '/api/v1/push/quiet-hours',
            json={'quiet_enabled': True, 'quiet_start': '25:00', 'quiet_end': '07:30'},
            headers=admin_headers
        )

        assert response.json() == {'quiet_enabled': True, 'quiet_start': '22:00', 'quiet_end': '07:30'}


class TestPushTest:
    """Test the admin test message"""

    @pytest.mark.asyncio
    async def test_without_subscriptions(self, client: AsyncClient, admin_headers):
        response = await client.post('/api/v1/push/test', json={'message': 'ping'}, headers=admin_headers)

        assert response.json()['ok'] is False

    @pytest.mark.asyncio
    async def test_reaches_every_subscription(
        self, client: AsyncClient, admin_headers, admin_subscription, member_subscription, push_transport
    ):
        response = await client.post('/api/v1/push/test', json={'message': 'ping'}, headers=admin_headers)

        assert response.json() == {'ok': True, 'sent': 2, 'failed': 0}
        assert {payload['body'] for _, payload in push_transport.sent} == {'ping'}

    @pytest.mark.asyncio
    async def test_requires_admin(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/v1/push/test', json={'message': 'ping'}, headers=auth_headers)

        assert response.status_code == 403


class TestHealth:
    """Test health endpoints"""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get('/health')

        assert response.status_code == 200
        assert response.json()['status'] == 'healthy'

    @pytest.mark.asyncio
    async def test_readiness_reaches_database(self, client: AsyncClient):
        response = await client.get('/api/v1/health/ready')

        assert response.json()['database'] == 'ok'
