from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from quizpost.api.routes.health import router as health_router
from quizpost.api.routes.quiz_generation import router as quiz_generation_router
from quizpost.api.routes.quizzes import router as quizzes_router
from quizpost.api.routes.scheduled_posts import router as scheduled_posts_router
from quizpost.api.routes.smart_generator import router as smart_generator_router
from quizpost.api.routes.templates import router as templates_router
from quizpost.api.routes.time_slots import router as time_slots_router
from quizpost.core.config import get_settings
from quizpost.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Quizpost API",
        version="0.1.0",
        docs_url="/docs" if settings.enable_openapi_docs else None,
        redoc_url="/redoc" if settings.enable_openapi_docs else None,
        openapi_url="/openapi.json" if settings.enable_openapi_docs else None,
    )
    app.include_router(health_router)
    app.include_router(templates_router)
    app.include_router(quizzes_router)
    app.include_router(scheduled_posts_router)
    app.include_router(quiz_generation_router)
    app.include_router(smart_generator_router)
    app.include_router(time_slots_router)

    media_dir = Path(settings.media_dir)
    media_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/media", StaticFiles(directory=media_dir), name="media")
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "quizpost.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
