from fastapi import APIRouter

from app.api import api_gesture

router = APIRouter()

router.include_router(api_gesture.router, tags=["gesture"], prefix="/gesture")
