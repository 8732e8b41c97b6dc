import logging

from fastapi import FastAPI

from .core.settings import LOG_FORMAT, settings
from .routers import api as api_router
from .routers import email as email_router
from .routers import records as records_router
from .services.store import RecordStore


def create_app(record_store: RecordStore = None) -> FastAPI:
    logging.basicConfig(level=settings.LOG_LEVEL, format=LOG_FORMAT)

    app = FastAPI(title=settings.APP_TITLE, version=settings.APP_VERSION)
    # Each app owns its records; tests pass a fresh store
    app.state.records = record_store if record_store is not None else RecordStore()
    app.include_router(api_router.router)
    app.include_router(records_router.router)
    app.include_router(email_router.router)

    logging.getLogger(__name__).info("%s %s ready", settings.APP_TITLE, settings.APP_VERSION)
    return app
