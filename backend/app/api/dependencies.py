from typing import Optional
from fastapi import Depends, Header, Request
from app.core.database import ConnectionManager
from app.core.errors import UnauthorizedError
from app.core.security import AuthenticatedIdentity, InvalidTokenError, TokenService
from app.services.auth_service import AuthService


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Pull the token out of an ``Authorization: Bearer <token>`` header.

    Anything else - missing header, another scheme, extra segments - counts
    as no token at all.
    """
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.db


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


async def require_identity(
    authorization: Optional[str] = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
) -> AuthenticatedIdentity:
    """
    Protected-route dependency.

    Route handlers receive the verified identity as an argument. A missing or
    rejected token ends the request with 401 before the handler runs.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        raise UnauthorizedError("No token provided. Please login.")
    try:
        return tokens.verify(token)
    except InvalidTokenError:
        raise UnauthorizedError("Invalid or expired token")


async def optional_identity(
    authorization: Optional[str] = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
) -> Optional[AuthenticatedIdentity]:
    """Like require_identity, but an absent or bad token just means anonymous"""
    token = extract_bearer_token(authorization)
    if token is None:
        return None
    try:
        return tokens.verify(token)
    except InvalidTokenError:
        # Deliberately ignored: the route works without an identity
        return None
