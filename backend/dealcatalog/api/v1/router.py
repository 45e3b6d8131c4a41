"""API router -- aggregates all endpoint routers under /api."""

from fastapi import APIRouter

from dealcatalog.api.v1 import admin, contact, deals, health, image_proxy

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(deals.router, prefix="/deals", tags=["deals"])
api_router.include_router(contact.router, prefix="/contact", tags=["contact"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(image_proxy.router, prefix="/image-proxy", tags=["image-proxy"])
