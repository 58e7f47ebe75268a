from fastapi import APIRouter

from services.lending.src.lending.routes.accounts import router as accounts_router
from services.lending.src.lending.routes.actions import router as actions_router
from services.lending.src.lending.routes.events import router as events_router
from services.lending.src.lending.routes.reserves import router as reserves_router

api_router = APIRouter(prefix="/api")
api_router.include_router(reserves_router)
api_router.include_router(accounts_router)
api_router.include_router(actions_router)
api_router.include_router(events_router)

__all__ = ["api_router"]
