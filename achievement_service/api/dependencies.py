from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from achievement_service.db.engine import get_async_session
from achievement_service.models.principal import Principal
from achievement_service.repos.activity_repo import ActivityRepo, InMemoryActivityRepo
from achievement_service.repos.catalog_repo import CatalogRepo, InMemoryCatalogRepo
from achievement_service.repos.pg_activity_repo import PgActivityRepo
from achievement_service.repos.pg_catalog_repo import PgCatalogRepo
from achievement_service.services import token_service

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")

# --- Module-level in-memory stores, used when DATABASE_URL is not set ---
memory_activity_repo = InMemoryActivityRepo()
memory_catalog_repo = InMemoryCatalogRepo()


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and return the calling Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=token_service.roles_from_claims(claims),
    )
    logger.debug(
        "Token validated for user=%s roles=%s",
        principal.user_id,
        principal.roles,
    )
    return principal


def get_activity_repo(
    session: Annotated[AsyncSession | None, Depends(get_async_session)],
) -> ActivityRepo:
    if session is None:
        return memory_activity_repo
    return PgActivityRepo(session)


def get_catalog_repo(
    session: Annotated[AsyncSession | None, Depends(get_async_session)],
) -> CatalogRepo:
    if session is None:
        return memory_catalog_repo
    return PgCatalogRepo(session)
