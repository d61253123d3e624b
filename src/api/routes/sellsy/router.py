"""Router principal da Sellsy: agrega os endpoints do canal."""

from __future__ import annotations

from fastapi import APIRouter

from api.routes.sellsy.webhook import router as webhook_router

router = APIRouter()

router.include_router(webhook_router, prefix="/webhook/sellsy")
