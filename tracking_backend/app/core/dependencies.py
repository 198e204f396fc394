"""
Actor identity dependencies for FastAPI.

Resolves the calling actor (id + role) from the bearer token and wires the
dual-store repository into request handlers.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from tracking_backend.app.core.config import settings
from tracking_backend.app.core.jwt import decode_access_token
from tracking_backend.app.db.session import get_db
from tracking_backend.app.domain.workflow.update_transaction import PackageUpdateTransaction
from tracking_backend.app.models.enums import ActorRole
from tracking_backend.app.services.dual_store import SqlAlchemyDualStore

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    FastAPI dependency returning the asserted actor.

    Checks:
    1. Validates JWT token signature and expiry
    2. Requires a user_id claim
    3. Requires a role claim naming a known ActorRole

    Returns:
        Decoded token payload; "role" is normalized to an ActorRole

    Raises:
        HTTPException: 401 if the token is invalid, 403 if the role is unknown
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        role = ActorRole(payload.get("role"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid role in token"
        )

    return {**payload, "user_id": str(user_id), "role": role}


async def get_repository(db: AsyncSession = Depends(get_db)) -> SqlAlchemyDualStore:
    """Dual-store repository bound to the request's session."""
    return SqlAlchemyDualStore(db)


async def get_transaction(
    repository: SqlAlchemyDualStore = Depends(get_repository),
) -> PackageUpdateTransaction:
    """Package update transaction over the request's repository."""
    return PackageUpdateTransaction(
        repository,
        enforce_versions=settings.optimistic_concurrency,
    )
