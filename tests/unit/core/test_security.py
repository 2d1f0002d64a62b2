"""
Unit Tests for Security Module
Tests for: password hashing, admin PIN, JWT tokens
"""
from datetime import timedelta

import pytest
from fastapi import HTTPException
from jose import jwt

from unionsite.core.config import settings
from unionsite.core.exceptions import (
    MemberNotFoundError,
    PushDeliveryError,
    error_response,
)
from unionsite.core.security import (
    ACCESS_TOKEN_TYPE,
    ADMIN_SUBJECT,
    RESET_TOKEN_TYPE,
    create_access_token,
    create_admin_token,
    create_reset_token,
    decode_token,
    get_password_hash,
    verify_admin_pin,
    verify_password,
)


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_differs_from_input(self):
        hashed = get_password_hash('testpassword123')

        assert hashed != 'testpassword123'
        assert verify_password('testpassword123', hashed) is True

    def test_wrong_password(self):
        hashed = get_password_hash('testpassword123')

        assert verify_password('wrongpassword', hashed) is False

    def test_empty_hash_never_matches(self):
        assert verify_password('anything', '') is False

    def test_long_password_truncated_consistently(self):
        password = '가' * 40  # 120 bytes in UTF-8
        hashed = get_password_hash(password)

        assert verify_password(password, hashed) is True


class TestAdminPin:
    """Test the shared admin PIN"""

    def test_configured_pin(self):
        assert verify_admin_pin(settings.ADMIN_PIN) is True

    @pytest.mark.parametrize('pin', ['', '0000', None, settings.ADMIN_PIN + '0'])
    def test_wrong_pin(self, pin):
        assert verify_admin_pin(pin) is False


class TestTokens:
    """Test JWT creation and decoding"""

    def test_access_token_payload(self):
        token = create_access_token({'sub': 'user-1', 'role': 'member'})

        payload = decode_token(token)

        assert payload['sub'] == 'user-1'
        assert payload['type'] == ACCESS_TOKEN_TYPE

    def test_admin_token(self):
        payload = decode_token(create_admin_token())

        assert payload['sub'] == ADMIN_SUBJECT
        assert payload['role'] == 'admin'

    def test_reset_token_type(self):
        payload = decode_token(create_reset_token('user-1', 'a@example.com'))

        assert payload['type'] == RESET_TOKEN_TYPE
        assert payload['email'] == 'a@example.com'

    def test_expired_token_rejected(self):
        token = create_access_token({'sub': 'user-1'}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(HTTPException) as exc:
            decode_token(token)

        assert exc.value.status_code == 401

    def test_foreign_signature_rejected(self):
        token = jwt.encode({'sub': 'user-1', 'type': 'access'}, 'other-secret', algorithm='HS256')

        with pytest.raises(HTTPException):
            decode_token(token)


class TestErrorBodies:
    """Test the JSON error shape"""

    def test_not_found_body(self):
        body = error_response(MemberNotFoundError('m1'))

        assert body['success'] is False
        assert body['detail'] == "Member with ID 'm1' not found"
        assert body['error']['code'] == 'MEMBER_NOT_FOUND'

    @pytest.mark.parametrize('status, gone', [(404, True), (410, True), (429, False), (500, False)])
    def test_push_subscription_gone(self, status, gone):
        assert PushDeliveryError('https://push.invalid/x', status).subscription_gone is gone
