import logging
from typing import AsyncIterator, Awaitable, Callable

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import async_session
from .domain.access import ActorContext, Permission
from .domain.errors import PermissionDeniedError
from .infrastructure.repositories import SqlAlchemyUserRepository
from .utils.auth import bearer_token, decode_access_token

logger = logging.getLogger(__name__)

_UNAUTHORIZED_HEADERS = {"WWW-Authenticate": "Bearer"}


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


async def get_current_actor(
    authorization: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> ActorContext:
    token = bearer_token(authorization)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="bearer token required",
            headers=_UNAUTHORIZED_HEADERS,
        )
    settings = get_settings()
    try:
        user_id = decode_access_token(token, secret=settings.auth_secret, algorithms=[settings.auth_algorithm])
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid token",
            headers=_UNAUTHORIZED_HEADERS,
        ) from exc

    try:
        actor = await SqlAlchemyUserRepository(session).get_actor(user_id)
    except SQLAlchemyError as exc:
        logger.exception("actor lookup failed for user_id=%s", user_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="user lookup failed") from exc
    finally:
        # The route shares this session and opens its own transaction for writes.
        await session.rollback()
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="user not found",
            headers=_UNAUTHORIZED_HEADERS,
        )
    return actor


def require_permission(page: str, permission: Permission) -> Callable[..., Awaitable[ActorContext]]:
    async def _require(actor: ActorContext = Depends(get_current_actor)) -> ActorContext:
        try:
            actor.require(page, permission)
        except PermissionDeniedError as exc:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
        return actor

    return _require
