import logging
import logging.config
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI
from starlette.middleware.cors import CORSMiddleware

from app.api.api_router import router
from app.core.config import settings
from app.helpers.exception_handler import CustomException, http_exception_handler
from app.services.srv_gesture import GestureSessionService, get_gesture_service, shutdown_gesture_service

if os.path.exists(settings.LOGGING_CONFIG_FILE):
    logging.config.fileConfig(settings.LOGGING_CONFIG_FILE, disable_existing_loggers=False)


@asynccontextmanager
async def lifespan(application: FastAPI):
    yield
    shutdown_gesture_service()


def get_application() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME, docs_url="/docs", redoc_url='/re-docs',
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan,
        description='''
        Motion Analyzer backend
            - Skeleton frame ingestion
            - Per-joint position / speed tracking
            - Gesture capture + weighted DTW recognition
            - Gesture template management
        '''
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(router, prefix=settings.API_PREFIX)
    application.add_exception_handler(CustomException, http_exception_handler)

    # Health check endpoint
    @application.get("/health")
    async def health_check(service: GestureSessionService = Depends(get_gesture_service)):
        return {
            "status": "healthy",
            "services": {
                "templates": service.recognizer.template_count,
                "capture": service.capture_state.value,
                "match_in_flight": service.match_in_flight,
                "dtw_backend": settings.DTW_BACKEND,
            }
        }

    return application


app = get_application()
if __name__ == '__main__':
    uvicorn.run(app, host="0.0.0.0", port=8000)
