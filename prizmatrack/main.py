import logging

from fastapi import FastAPI

import prizmatrack.models  # noqa: F401  # register mappers before first query
from prizmatrack.config import settings
from prizmatrack.errors import register_error_handlers
from prizmatrack.routes.auth import router as auth_router
from prizmatrack.routes.clients import router as clients_router
from prizmatrack.routes.health import router as health_router
from prizmatrack.routes.orders import router as orders_router
from prizmatrack.routes.organizations import router as organizations_router
from prizmatrack.routes.users import router as users_router

def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="prizmatrack-api", version="0.1.0")
    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(organizations_router)
    app.include_router(clients_router)
    app.include_router(orders_router)
    return app

app = create_app()
