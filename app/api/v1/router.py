from fastapi import APIRouter

from app.api.v1.endpoints import soil

api_router = APIRouter()

api_router.include_router(soil.router)
