"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from zeelink.core.errors import ForbiddenError, InvalidTokenError, UnauthorizedError
from zeelink.core.security import decode_access_token
from zeelink.core.settings import settings
from zeelink.db.ezclient import EzClient
from zeelink.db.session import get_db
from zeelink.services import users as user_service
from zeelink.services.auth import AuthenticatedUser
from zeelink.services.sms import SmsGateway, get_sms_gateway
from zeelink.services.storage import ObjectStorage, get_object_storage
from zeelink.services.verification import VerificationService, get_verification_service

# Missing credentials are reported through the envelope, not by HTTPBearer.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_ez_client(db: SessionDep) -> EzClient:
    """Wrap the request's session in a data client."""
    return EzClient(db)


EzClientDep = Annotated[EzClient, Depends(get_ez_client)]


def get_token(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str | None:
    """Return the bearer token, falling back to the auth cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.auth_cookie_name)


TokenDep = Annotated[str | None, Depends(get_token)]


def get_optional_user(token: TokenDep) -> AuthenticatedUser | None:
    """Return the caller if a valid token was presented, otherwise None."""
    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None:
        return None
    return AuthenticatedUser.from_payload(payload)


def get_current_user(token: TokenDep) -> AuthenticatedUser:
    """Get the authenticated caller from the JWT.

    Raises:
        UnauthorizedError: If no token was presented.
        InvalidTokenError: If the token is expired, forged or malformed.
    """
    if not token:
        raise UnauthorizedError("请先登录")
    payload = decode_access_token(token)
    if payload is None:
        raise InvalidTokenError()
    user = AuthenticatedUser.from_payload(payload)
    if user is None:
        raise InvalidTokenError()
    return user


OptionalUserDep = Annotated[AuthenticatedUser | None, Depends(get_optional_user)]
CurrentUserDep = Annotated[AuthenticatedUser, Depends(get_current_user)]


def require_admin(user: CurrentUserDep, client: EzClientDep) -> AuthenticatedUser:
    """Allow only accounts whose stored role is admin."""
    if not user_service.is_admin(client, user.id):
        raise ForbiddenError("需要管理员权限")
    return user


AdminUserDep = Annotated[AuthenticatedUser, Depends(require_admin)]
VerificationDep = Annotated[VerificationService, Depends(get_verification_service)]
SmsDep = Annotated[SmsGateway, Depends(get_sms_gateway)]
StorageDep = Annotated[ObjectStorage, Depends(get_object_storage)]
