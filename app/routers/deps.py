"""Shared router dependencies."""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from app.models.actor import Actor
from app.utils.auth import verify_access_token
from app.utils.errors import GoalServiceError

security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Actor:
    """
    Dependency to get the acting user from the bearer token.

    Raises:
        HTTPException: If token is missing or invalid (401)
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    try:
        user_id = verify_access_token(credentials.credentials)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )
    return Actor(user_id=user_id)


def to_http_error(error: GoalServiceError) -> HTTPException:
    """Translate a service error into the matching HTTP error."""
    return HTTPException(status_code=error.status_code, detail=str(error))
