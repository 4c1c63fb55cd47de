import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from utils.logging_setup import setup_logging

setup_logging()

from db.database import init_db  # noqa: E402
from api.responses import register_exception_handlers  # noqa: E402
from auth.routes import router as auth_router, users_router  # noqa: E402
from api.workouts import router as workouts_router  # noqa: E402
from api.meals import router as meals_router  # noqa: E402
from api.nutrition import router as nutrition_router  # noqa: E402
from api.progress import router as progress_router  # noqa: E402
from api.master import router as master_router  # noqa: E402
from api.ai_workouts import router as ai_workouts_router  # noqa: E402
from api.ai_meals import router as ai_meals_router  # noqa: E402

logger = logging.getLogger(__name__)

settings.validate_security_configuration()

# Create all tables
init_db()

app = FastAPI(title=settings.APP_NAME, version="1.0.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def request_timing_middleware(request: Request, call_next):
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            status_code,
            (time.perf_counter() - started) * 1000.0,
        )


# Routers
app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(workouts_router, prefix="/api")
app.include_router(meals_router, prefix="/api")
app.include_router(nutrition_router, prefix="/api")
app.include_router(progress_router, prefix="/api")
app.include_router(master_router, prefix="/api")
app.include_router(ai_workouts_router, prefix="/api")
app.include_router(ai_meals_router, prefix="/api")


@app.get("/api/health")
def health_check():
    return {"status": "ok", "app": settings.APP_NAME}
