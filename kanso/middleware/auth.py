"""Authentication dependency for protected routes"""
from typing import Optional

from fastapi import Depends, HTTPException, Request

from ..config import settings
from ..schemas.auth import AuthUser


def get_session_token(request: Request) -> Optional[str]:
    """Session token from the HttpOnly cookie, or a Bearer header as fallback"""
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token

    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return None


async def get_current_user(request: Request) -> AuthUser:
    """
    Dependency to get the current authenticated user

    Raises:
        HTTPException: If the token is missing or unknown
    """
    token = get_session_token(request)
    if not token:
        raise HTTPException(
            status_code=401,
            detail={
                "error": "Unauthorized",
                "message": "Missing session token",
                "details": {}
            },
            headers={"WWW-Authenticate": "Bearer"}
        )

    user = request.app.state.sessions.get(token)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={
                "error": "Unauthorized",
                "message": "Invalid or expired session",
                "details": {}
            },
            headers={"WWW-Authenticate": "Bearer"}
        )

    return user


def require_auth(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    """Dependency shorthand for requiring authentication"""
    return user
