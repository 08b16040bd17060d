from fastapi import FastAPI

from pdf_merger.api.routes import router as merges_router
from pdf_merger.config.settings import get_settings


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name)
    app.include_router(merges_router)
    return app


app = create_app()
