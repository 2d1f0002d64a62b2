"""
Unit Tests for Post API Endpoints
"""
import pytest
from httpx import AsyncClient
from faker import Faker

fake = Faker()


def post_body(board: str = 'free', **overrides) -> dict:
    body = {
        'type': board,
        'title': fake.sentence(nb_words=4),
        'content': fake.paragraph(),
        'author': fake.name(),
        'createdAt': '2025-06-01T09:00:00Z',
        'views': 0,
        'pinned': False,
        'pinnedAt': None,
        'comments': [],
    }
    body.update(overrides)
    return body


def comment(content: str, comment_id: str = 'c1') -> dict:
    return {'id': comment_id, 'author': '김조합', 'content': content, 'createdAt': '2025-06-02', 'replies': []}


class TestReadPosts:
    """Test anonymous reads"""

    @pytest.mark.asyncio
    async def test_list_empty(self, client: AsyncClient, db_session):
        response = await client.get('/api/v1/posts')

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_list_is_summary_newest_first(self, client: AsyncClient, admin_headers):
        await client.put('/api/v1/posts/old', json=post_body(createdAt='2025-01-01'), headers=admin_headers)
        await client.put('/api/v1/posts/new', json=post_body(createdAt='2025-02-01'), headers=admin_headers)

        response = await client.get('/api/v1/posts')

        posts = response.json()
        assert [p['id'] for p in posts] == ['new', 'old']
        assert 'content' not in posts[0]
        assert 'comments' not in posts[0]

    @pytest.mark.asyncio
    async def test_get_missing_post(self, client: AsyncClient, db_session):
        response = await client.get('/api/v1/posts/nope')

        assert response.status_code == 404
        assert response.json()['error']['code'] == 'POST_NOT_FOUND'


class TestWritePermissions:
    """Test who may create posts where"""

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client: AsyncClient, db_session):
        response = await client.put('/api/v1/posts/p1', json=post_body())

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_pending_member_cannot_write(self, client: AsyncClient, pending_headers):
        response = await client.put('/api/v1/posts/p1', json=post_body(), headers=pending_headers)

        assert response.status_code == 403
        assert response.json()['error']['code'] == 'APPROVAL_PENDING'

    @pytest.mark.asyncio
    async def test_member_writes_free_board(self, client: AsyncClient, member_user, auth_headers):
        response = await client.put('/api/v1/posts/p1', json=post_body(), headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['authorId'] == member_user.id
        assert data['userId'] == member_user.id

    @pytest.mark.asyncio
    async def test_author_id_cannot_be_borrowed(self, client: AsyncClient, member_user, other_member, other_headers):
        response = await client.put(
            '/api/v1/posts/p1',
            json=post_body(authorId=member_user.id),
            headers=other_headers
        )

        assert response.json()['authorId'] == other_member.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize('board', ['notice_all', 'family_events', 'resources'])
    async def test_member_cannot_write_admin_board(self, client: AsyncClient, auth_headers, board):
        response = await client.put('/api/v1/posts/p1', json=post_body(board), headers=auth_headers)

        assert response.status_code == 403
        assert response.json()['error']['code'] == 'ADMIN_REQUIRED'

    @pytest.mark.asyncio
    async def test_admin_writes_notice(self, client: AsyncClient, admin_headers):
        response = await client.put('/api/v1/posts/n1', json=post_body('notice_all'), headers=admin_headers)

        assert response.status_code == 200
        assert response.json()['type'] == 'notice_all'

    @pytest.mark.asyncio
    async def test_create_requires_fields(self, client: AsyncClient, auth_headers):
        response = await client.put('/api/v1/posts/p1', json={'type': 'free', 'title': 'x'}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'VALIDATION_ERROR'


class TestUpdates:
    """Test partial updates and ownership"""

    @pytest.mark.asyncio
    async def test_omitted_fields_survive(self, client: AsyncClient, auth_headers):
        body = post_body(content='원래 본문')
        await client.put('/api/v1/posts/p1', json=body, headers=auth_headers)

        response = await client.put('/api/v1/posts/p1', json={'title': '바뀐 제목'}, headers=auth_headers)

        data = response.json()
        assert data['title'] == '바뀐 제목'
        assert data['content'] == '원래 본문'

    @pytest.mark.asyncio
    async def test_member_comments_on_notice(self, client: AsyncClient, admin_headers, auth_headers):
        await client.put('/api/v1/posts/n1', json=post_body('notice_all'), headers=admin_headers)

        response = await client.put(
            '/api/v1/posts/n1',
            json=post_body('notice_all', comments=[comment('hello')]),
            headers=auth_headers
        )

        assert response.status_code == 200
        assert [c['content'] for c in response.json()['comments']] == ['hello']

    @pytest.mark.asyncio
    async def test_non_owner_only_changes_comments(self, client: AsyncClient, auth_headers, other_headers):
        original = post_body(title='원래 제목')
        await client.put('/api/v1/posts/p1', json=original, headers=auth_headers)

        response = await client.put(
            '/api/v1/posts/p1',
            json={**original, 'title': '가로채기', 'comments': [comment('hi')]},
            headers=other_headers
        )

        data = response.json()
        assert data['title'] == '원래 제목'
        assert len(data['comments']) == 1

    @pytest.mark.asyncio
    async def test_non_owner_without_comments_is_refused(self, client: AsyncClient, auth_headers, other_headers):
        await client.put('/api/v1/posts/p1', json=post_body(), headers=auth_headers)

        response = await client.put('/api/v1/posts/p1', json={'title': '가로채기'}, headers=other_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_only_admin_pins(self, client: AsyncClient, auth_headers, admin_headers):
        await client.put('/api/v1/posts/p1', json=post_body(), headers=auth_headers)

        by_owner = await client.put(
            '/api/v1/posts/p1',
            json={'title': '고정?', 'pinned': True, 'pinnedAt': '2025-06-03'},
            headers=auth_headers
        )
        by_admin = await client.put(
            '/api/v1/posts/p1',
            json={'pinned': True, 'pinnedAt': '2025-06-03'},
            headers=admin_headers
        )

        assert by_owner.json()['pinned'] is False
        assert by_admin.json()['pinned'] is True
        assert by_admin.json()['pinnedAt'] == '2025-06-03'

    @pytest.mark.asyncio
    async def test_update_ignores_views(self, client: AsyncClient, admin_headers):
        await client.put('/api/v1/posts/p1', json=post_body(views=5), headers=admin_headers)

        response = await client.put('/api/v1/posts/p1', json={'title': 't', 'views': 0}, headers=admin_headers)

        assert response.json()['views'] == 5


class TestViewsAndDelete:
    """Test the view counter and deletion"""

    @pytest.mark.asyncio
    async def test_anonymous_view_count(self, client: AsyncClient, admin_headers):
        await client.put('/api/v1/posts/p1', json=post_body(views=1), headers=admin_headers)

        first = await client.post('/api/v1/posts/p1/views')
        second = await client.post('/api/v1/posts/p1/views')

        assert first.json() == {'id': 'p1', 'views': 2}
        assert second.json()['views'] == 3

    @pytest.mark.asyncio
    async def test_view_missing_post(self, client: AsyncClient, db_session):
        response = await client.post('/api/v1/posts/nope/views')

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_author_deletes(self, client: AsyncClient, auth_headers):
        await client.put('/api/v1/posts/p1', json=post_body(), headers=auth_headers)

        response = await client.delete('/api/v1/posts/p1', headers=auth_headers)
        after = await client.get('/api/v1/posts/p1')

        assert response.status_code == 204
        assert after.status_code == 404

    @pytest.mark.asyncio
    async def test_other_member_cannot_delete(self, client: AsyncClient, auth_headers, other_headers):
        await client.put('/api/v1/posts/p1', json=post_body(), headers=auth_headers)

        response = await client.delete('/api/v1/posts/p1', headers=other_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_deletes_any_post(self, client: AsyncClient, auth_headers, admin_headers):
        await client.put('/api/v1/posts/p1', json=post_body(), headers=auth_headers)

        response = await client.delete('/api/v1/posts/p1', headers=admin_headers)

        assert response.status_code == 204


class TestNewPostNotifications:
    """Creating a post notifies subscribers"""

    @pytest.mark.asyncio
    async def test_new_post_pushes_deep_link(
        self, client: AsyncClient, admin_headers, member_subscription, push_transport
    ):
        await client.put('/api/v1/posts/n7', json=post_body('notice_all'), headers=admin_headers)

        assert len(push_transport.sent) == 1
        endpoint, payload = push_transport.sent[0]
        assert endpoint == member_subscription.endpoint
        assert payload['url'] == '/#tab=notice_all&post=n7'

    @pytest.mark.asyncio
    async def test_update_does_not_push(
        self, client: AsyncClient, admin_headers, member_subscription, push_transport
    ):
        await client.put('/api/v1/posts/n7', json=post_body('notice_all'), headers=admin_headers)
        await client.put('/api/v1/posts/n7', json={'title': '수정'}, headers=admin_headers)

        assert len(push_transport.sent) == 1
