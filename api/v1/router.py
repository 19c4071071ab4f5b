# api/v1/router.py
from fastapi import APIRouter

from . import auth, meals, pantry, progress, stream, summary, tdee, users, water

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(tdee.router, prefix="/tdee", tags=["TDEE"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(meals.router, prefix="/meals", tags=["Meals"])
api_router.include_router(pantry.router, prefix="/pantry", tags=["Pantry"])
api_router.include_router(water.router, prefix="/water", tags=["Water"])
api_router.include_router(progress.router, prefix="/progress", tags=["Progress"])
api_router.include_router(summary.router, prefix="/summary", tags=["Summary"])

# websocket lives at /api/v1/stream
api_router.include_router(stream.router, tags=["Stream"])
