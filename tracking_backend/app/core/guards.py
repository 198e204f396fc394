"""
Security guards for role-based access control.

Provides dependencies for protecting endpoints.
"""

from typing import List
from fastapi import Depends, HTTPException, status
from tracking_backend.app.models.enums import ActorRole
from tracking_backend.app.core.dependencies import get_current_actor


def require_role(allowed_roles: List[ActorRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/orders")
        async def create_order(actor: dict = Depends(require_role([ActorRole.ADMIN]))):
            ...

    Args:
        allowed_roles: List of ActorRole enums that are allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates the actor's role

    Raises:
        HTTPException 403 if actor role is not in allowed_roles
    """
    async def role_checker(current_actor: dict = Depends(get_current_actor)) -> dict:
        if current_actor["role"] not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return current_actor

    return role_checker


def require_admin(current_actor: dict = Depends(get_current_actor)) -> dict:
    """
    Dependency for admin-only endpoints.

    Returns:
        Actor payload if admin, raises 403 otherwise
    """
    if current_actor["role"] != ActorRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )

    return current_actor
