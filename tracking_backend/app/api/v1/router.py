"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from tracking_backend.app.api.v1.endpoints import packages, orders, admin

router = APIRouter()

# Package workflow endpoints
router.include_router(packages.router)

# Order lifecycle endpoints
router.include_router(orders.router)

# Admin dashboard endpoints
router.include_router(admin.router)
