import logging

from fastapi import FastAPI

from propdash.api.list_views import router as list_views_router
from propdash.config import settings
from propdash.db import Base, get_engine
from propdash.errors import register_error_handlers

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="propdash list views")
    register_error_handlers(app)
    app.include_router(list_views_router)

    @app.on_event("startup")
    def _create_tables() -> None:
        if settings.preference_backend == "database":
            import propdash.models  # noqa: F401

            Base.metadata.create_all(get_engine())
            logger.info("Preference tables ready on %s", get_engine().url)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
