import logging
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.router import api_router
from app.core import init_database, settings
from app.core.exceptions import register_exception_handlers
from app.core.logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="FitnessPT - персональные программы тренировок", debug=settings.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    await init_database()
    logger.info("Приложение запущено (окружение: %s)", settings.ENVIRONMENT)


@app.get("/")
async def root():
    return {
        "app": "FitnessPT",
        "message": "FitnessPT - personal training routines",
        "links": {
            "auth": "/api/v1/auth/status",
            "routines": "/api/v1/routines",
            "exercises": "/api/v1/exercises",
            "categories": "/api/v1/categories",
            "docs": "/docs",
        },
    }


@app.get("/health")
async def health():
    return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}
