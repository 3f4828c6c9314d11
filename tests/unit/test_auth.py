"""Tests for auth utility functions."""
import pytest
from datetime import timedelta


class TestJWTTokens:
    """Tests for JWT token functions."""

    def test_create_access_token_basic(self):
        """Test creating a basic JWT access token."""
        from app.utils.auth import create_access_token

        token = create_access_token(user_id="user123")

        assert isinstance(token, str)
        assert len(token) > 0

    def test_verify_access_token_valid(self):
        """Test verifying a valid access token."""
        from app.utils.auth import create_access_token, verify_access_token

        token = create_access_token(user_id="user123", expires_delta=timedelta(hours=1))

        assert verify_access_token(token) == "user123"

    def test_verify_access_token_invalid(self):
        """Test verifying an invalid token."""
        from app.utils.auth import verify_access_token
        from jose import JWTError

        with pytest.raises(JWTError):
            verify_access_token("invalid.token.here")

    def test_verify_access_token_expired(self):
        """Test verifying an expired token."""
        from app.utils.auth import create_access_token, verify_access_token
        from jose import JWTError

        token = create_access_token(user_id="user123", expires_delta=timedelta(seconds=-1))

        with pytest.raises(JWTError):
            verify_access_token(token)

    def test_verify_access_token_without_subject(self):
        """Test a token without a subject is rejected."""
        from app.config import settings
        from app.utils.auth import verify_access_token
        from jose import JWTError, jwt

        token = jwt.encode({"foo": "bar"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)

        with pytest.raises(JWTError):
            verify_access_token(token)


@pytest.mark.asyncio
class TestCurrentActor:
    """Tests for the bearer token dependency."""

    async def test_missing_credentials(self):
        """Test a request without token is rejected."""
        from fastapi import HTTPException
        from app.routers.deps import get_current_actor

        with pytest.raises(HTTPException) as exc_info:
            await get_current_actor(None)

        assert exc_info.value.status_code == 401

    async def test_valid_credentials(self):
        """Test a valid token yields the actor."""
        from fastapi.security import HTTPAuthorizationCredentials
        from app.routers.deps import get_current_actor
        from app.utils.auth import create_access_token

        credentials = HTTPAuthorizationCredentials(
            scheme="Bearer", credentials=create_access_token(user_id="user123")
        )

        actor = await get_current_actor(credentials)

        assert actor.user_id == "user123"
