"""
Unit Tests for Member API Endpoints
"""
import pytest
from httpx import AsyncClient
from faker import Faker

fake = Faker()


def application(email: str, **overrides) -> dict:
    body = {
        'name': '김신입',
        'birthDate': '900101',
        'phone': '010-1111-2222',
        'email': email,
        'garage': '도봉',
        'signupDate': '2025-06-01T09:00:00Z',
        'isApproved': False,
    }
    body.update(overrides)
    return body


async def sign_up(client: AsyncClient) -> tuple:
    """Fresh account without a membership application"""
    email = fake.unique.email()
    response = await client.post('/api/v1/auth/signup', json={'email': email, 'password': 'secret123'})
    data = response.json()
    return data['user']['id'], email, {'Authorization': f"Bearer {data['access_token']}"}


class TestApplications:
    """Test membership applications"""

    @pytest.mark.asyncio
    async def test_application_starts_unapproved(self, client: AsyncClient, db_session):
        user_id, email, headers = await sign_up(client)

        response = await client.put(
            f'/api/v1/members/{user_id}',
            json=application(email, isApproved=True),
            headers=headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data['isApproved'] is False
        assert data['signupDate'] == '2025-06-01T09:00:00Z'

    @pytest.mark.asyncio
    async def test_application_alerts_admins_only(
        self, client: AsyncClient, admin_subscription, member_subscription, push_transport
    ):
        user_id, email, headers = await sign_up(client)

        await client.put(f'/api/v1/members/{user_id}', json=application(email), headers=headers)

        assert [endpoint for endpoint, _ in push_transport.sent] == [admin_subscription.endpoint]
        assert push_transport.sent[0][1]['url'] == '/#tab=admin'

    @pytest.mark.asyncio
    async def test_cannot_apply_for_someone_else(self, client: AsyncClient, member_user):
        _, email, headers = await sign_up(client)

        response = await client.put(f'/api/v1/members/{member_user.id}', json=application(email), headers=headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_name_rejected(self, client: AsyncClient, db_session):
        user_id, email, headers = await sign_up(client)

        response = await client.put(
            f'/api/v1/members/{user_id}',
            json=application(email, name=''),
            headers=headers
        )

        assert response.status_code == 422


class TestMemberReads:
    """Test who can read member records"""

    @pytest.mark.asyncio
    async def test_member_reads_own_record(self, client: AsyncClient, member_user, auth_headers):
        response = await client.get(f'/api/v1/members/{member_user.id}', headers=auth_headers)

        assert response.status_code == 200
        assert response.json()['isApproved'] is True

    @pytest.mark.asyncio
    async def test_member_cannot_read_others(self, client: AsyncClient, other_member, auth_headers):
        response = await client.get(f'/api/v1/members/{other_member.id}', headers=auth_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_list_requires_admin(self, client: AsyncClient, auth_headers):
        response = await client.get('/api/v1/members', headers=auth_headers)

        assert response.status_code == 403
        assert response.json()['error']['code'] == 'ADMIN_REQUIRED'

    @pytest.mark.asyncio
    async def test_admin_lists_members(self, client: AsyncClient, member_user, pending_user, admin_headers):
        response = await client.get('/api/v1/members', headers=admin_headers)

        assert response.status_code == 200
        assert {m['id'] for m in response.json()} == {member_user.id, pending_user.id}

    @pytest.mark.asyncio
    async def test_missing_member(self, client: AsyncClient, admin_headers):
        response = await client.get('/api/v1/members/nobody', headers=admin_headers)

        assert response.status_code == 404
        assert response.json()['error']['code'] == 'MEMBER_NOT_FOUND'


class TestApproval:
    """Test admin approval"""

    @pytest.mark.asyncio
    async def test_admin_approves(self, client: AsyncClient, pending_user, pending_headers, admin_headers):
        record = (await client.get(f'/api/v1/members/{pending_user.id}', headers=pending_headers)).json()

        response = await client.put(
            f'/api/v1/members/{pending_user.id}',
            json={**record, 'isApproved': True},
            headers=admin_headers
        )
        write = await client.put(
            '/api/v1/posts/p1',
            json={'type': 'free', 'title': 't', 'content': 'c', 'author': record['name'], 'createdAt': '2025-06-01'},
            headers=pending_headers
        )

        assert response.json()['isApproved'] is True
        assert write.status_code == 200

    @pytest.mark.asyncio
    async def test_member_cannot_approve_self(self, client: AsyncClient, pending_user, pending_headers):
        record = (await client.get(f'/api/v1/members/{pending_user.id}', headers=pending_headers)).json()

        response = await client.put(
            f'/api/v1/members/{pending_user.id}',
            json={**record, 'isApproved': True},
            headers=pending_headers
        )

        assert response.json()['isApproved'] is False


class TestRemoval:
    """Test withdrawal and admin removal"""

    @pytest.mark.asyncio
    async def test_withdrawal_removes_account(
        self, client: AsyncClient, member_user, auth_headers, member_password, admin_subscription, push_transport
    ):
        email = member_user.email

        response = await client.delete(f'/api/v1/members/{member_user.id}', headers=auth_headers)
        login = await client.post('/api/v1/auth/login', json={'email': email, 'password': member_password})

        assert response.status_code == 204
        assert login.status_code == 401
        assert push_transport.sent[0][1]['tag'] == 'admin-withdraw'

    @pytest.mark.asyncio
    async def test_admin_removal_keeps_account(
        self, client: AsyncClient, member_user, admin_headers, member_password, push_transport
    ):
        response = await client.delete(f'/api/v1/members/{member_user.id}', headers=admin_headers)
        login = await client.post(
            '/api/v1/auth/login',
            json={'email': member_user.email, 'password': member_password}
        )

        assert response.status_code == 204
        assert login.status_code == 200
        assert push_transport.sent == []

    @pytest.mark.asyncio
    async def test_cannot_remove_others(self, client: AsyncClient, other_member, auth_headers):
        response = await client.delete(f'/api/v1/members/{other_member.id}', headers=auth_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_remove_missing_member(self, client: AsyncClient, admin_headers):
        response = await client.delete('/api/v1/members/nobody', headers=admin_headers)

        assert response.status_code == 404
