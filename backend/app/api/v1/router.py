"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import users, delivery_agents, parcels, live_updates

router = APIRouter()

# Accounts and roles
router.include_router(users.router)

# Delivery agent applications
router.include_router(delivery_agents.router)

# Parcel booking and lifecycle
router.include_router(parcels.router)

# Live status signal
router.include_router(live_updates.router)
