from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from coursegate.db import engine as db_engine
from coursegate.models.principal import Principal, Role
from coursegate.repos.pg_unit_of_work import PgUnitOfWork
from coursegate.repos.unit_of_work import InMemoryUnitOfWork, UnitOfWork
from coursegate.services import token_service

logger = logging.getLogger(__name__)

# auto_error=False: anonymous callers reach the optional-auth endpoints
# with token=None instead of an automatic 401.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token", auto_error=False)

# Process-local stores used when DATABASE_URL is unset.  Tests reset it.
memory_uow = InMemoryUnitOfWork()


async def get_uow() -> AsyncGenerator[UnitOfWork, None]:
    """Request-scoped unit of work: PostgreSQL if configured, else in-memory."""
    if db_engine.async_session_factory is None:
        yield memory_uow
        return
    async with db_engine.session_scope() as session:
        yield PgUnitOfWork(session)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _decode_subject(raw_token: str) -> UUID:
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    try:
        return UUID(claims["sub"])
    except ValueError:
        logger.warning("Token subject is not a UUID: %r", claims["sub"])
        raise _unauthorized("Invalid token") from None


async def optional_principal(
    raw_token: Annotated[str | None, Depends(oauth2_scheme)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> Principal | None:
    """Resolve the caller if a bearer token was sent.

    No token means anonymous (None).  A token that fails verification is
    still a 401: a broken token is a client bug, not an anonymous visit.
    The principal comes from the store, so an inactive account is passed
    through and the engine treats it as unauthenticated.
    """
    if raw_token is None:
        return None
    user_id = _decode_subject(raw_token)
    principal = await uow.principals.get_by_id(user_id)
    if principal is None:
        logger.warning("Token for unknown user=%s", user_id)
    return principal


async def require_user(
    principal: Annotated[Principal | None, Depends(optional_principal)],
) -> Principal:
    if principal is None:
        raise _unauthorized("Not authenticated")
    if not principal.is_active:
        logger.warning("Inactive user=%s rejected", principal.user_id)
        raise _unauthorized("Account is inactive")
    logger.debug("Token validated for user=%s role=%s", principal.user_id, principal.role.value)
    return principal


def require_role(role: Role):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role(Role.ADMIN))
    Returns the Principal if the role matches, else 403.
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if principal.role is not role:
            logger.warning(
                "Access denied: user=%s role=%s required=%s",
                principal.user_id,
                principal.role.value,
                role.value,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard
