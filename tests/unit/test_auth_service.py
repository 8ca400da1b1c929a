"""
Unit tests for bearer token verification
"""
from datetime import datetime, timedelta

import pytest
from jose import jwt

from prodspark.services.auth_service import AuthenticatedUser, AuthService

SECRET = "unit-test-secret"


def _token(payload, key=SECRET):
    return jwt.encode(payload, key, algorithm="HS256")


@pytest.fixture
def service():
    return AuthService(key=SECRET, algorithm="HS256", issuer="")


class TestAuthService:

    @pytest.mark.unit
    def test_valid_token_maps_to_user(self, service):
        token = _token({"sub": "user_123", "name": "Ada Lovelace", "picture": "https://img.example/ada.png"})

        user = service.user_from_token(token)

        assert user == AuthenticatedUser(
            user_id="user_123", name="Ada Lovelace", avatar_url="https://img.example/ada.png"
        )

    @pytest.mark.unit
    def test_wrong_key_is_rejected(self, service):
        assert service.user_from_token(_token({"sub": "user_123"}, key="other")) is None

    @pytest.mark.unit
    def test_expired_token_is_rejected(self, service):
        token = _token({"sub": "user_123", "exp": datetime.utcnow() - timedelta(minutes=1)})
        assert service.decode_token(token) is None

    @pytest.mark.unit
    def test_missing_subject_is_rejected(self, service):
        assert service.user_from_token(_token({"name": "No Sub"})) is None

    @pytest.mark.unit
    def test_garbage_is_rejected(self, service):
        assert service.user_from_token("not-a-jwt") is None

    @pytest.mark.unit
    def test_issuer_is_enforced_when_configured(self):
        service = AuthService(key=SECRET, algorithm="HS256", issuer="https://clerk.prodspark.dev")

        good = _token({"sub": "u1", "iss": "https://clerk.prodspark.dev"})
        bad = _token({"sub": "u1", "iss": "https://evil.example"})

        assert service.user_from_token(good).user_id == "u1"
        assert service.user_from_token(bad) is None
