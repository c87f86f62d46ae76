"""API v1 router combining all route modules."""

from fastapi import APIRouter

from dissonant.api.v1 import events, health, orders
from dissonant.api.v1.webhooks import shippo as shippo_webhooks

api_router = APIRouter()

# Health check routes (no prefix)
api_router.include_router(health.router)

# Shippo webhook (verified via optional shared token)
api_router.include_router(shippo_webhooks.router, tags=["webhooks"])

# Status checks and label creation, called by the mobile app
api_router.include_router(orders.router, tags=["orders"])

# Document-creation events
api_router.include_router(events.router, prefix="/events", tags=["events"])
