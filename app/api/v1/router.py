"""Routes mounted under /api/v1.

Forms CRUD and the realtime feed share the /forms prefix; tracked uploads
and token-checked file reads live beside them.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import forms, health, storage, uploads, websocket

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(forms.router, prefix="/forms", tags=["forms"])
api_router.include_router(websocket.router, prefix="/forms", tags=["realtime"])
api_router.include_router(uploads.router, prefix="/uploads", tags=["uploads"])
api_router.include_router(storage.router, prefix="/storage", tags=["storage"])
