"""Unit tests for JWT token handling."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt

from opsconsole.config import settings
from opsconsole.core.auth.backend import create_access_token, decode_token


pytestmark = pytest.mark.unit


class TestAccessTokens:
    """Tests for create_access_token / decode_token."""

    def test_roundtrip_identifies_user(self):
        user_id = uuid4()

        token_data = decode_token(create_access_token(user_id))

        assert token_data is not None
        assert token_data.user_id == user_id
        assert token_data.type == "access"

    def test_token_carries_no_permissions(self):
        """Permissions are recomputed server-side, never read from the token."""
        payload = jwt.get_unverified_claims(create_access_token(uuid4()))

        assert "permissions" not in payload
        assert set(payload) == {"sub", "exp", "iat", "type", "jti"}

    def test_expired_token_rejected(self):
        token = create_access_token(uuid4(), expires_delta=timedelta(seconds=-1))

        assert decode_token(token) is None

    def test_wrong_signature_rejected(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "exp": 9999999999},
            "another-secret-that-is-long-enough-to-pass",
            algorithm=settings.jwt_algorithm,
        )

        assert decode_token(token) is None

    def test_garbage_rejected(self):
        assert decode_token("not-a-jwt") is None

    def test_non_uuid_subject_rejected(self):
        token = create_access_token(uuid4(), additional_claims={"sub": "admin"})

        assert decode_token(token) is None
