import logging

from fastapi import FastAPI

from flux.config import settings
from flux.errors import install_error_handlers
from flux.routes.auth import router as auth_router
from flux.routes.calendar import router as calendar_router
from flux.routes.health import router as health_router
from flux.routes.me import router as me_router
from flux.routes.orgs import router as orgs_router
from flux.routes.tasks import router as tasks_router
from flux.routes.teams import router as teams_router

def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="flux-api", version="0.1.0")
    install_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(me_router)
    app.include_router(orgs_router)
    app.include_router(teams_router)
    app.include_router(tasks_router)
    app.include_router(calendar_router)
    return app

app = create_app()
