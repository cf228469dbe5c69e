from fastapi import APIRouter, FastAPI

from .admin import router as admin_router
from .pairing import router as pairing_router


def include_modular_routers(app: FastAPI) -> None:
    app.include_router(pairing_router, tags=["pairings"])
    app.include_router(admin_router, tags=["admin"])


__all__ = ["include_modular_routers", "APIRouter"]
