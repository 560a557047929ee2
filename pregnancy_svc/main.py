"""
Pregnancy Health Service API.

Patients submit health data and get a Gemini risk assessment, read their own
history and talk to a streaming assistant that knows it. Admins list, delete
and export every record.

    routers (api/routers)  ->  services  ->  repositories  ->  SQLite

Run with ``python main.py`` from this directory, or ``uvicorn main:app``.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from core.config import API_HOST, API_PORT, API_RELOAD
from core.dependencies import get_chat_registry, get_database, reset_chat_registry
from core.exceptions import setup_exception_handlers
from core.logging_config import setup_logging
from core.middleware import LoggingMiddleware
from api.routers import (
    health_router,
    assessments_router,
    records_router,
    chat_router,
    users_router,
    admin_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging(level="INFO", json_format=True)
    logger = logging.getLogger(__name__)

    # Opening the store creates its tables.
    db = get_database()
    get_chat_registry()
    logger.info("Pregnancy Health Service API started", extra={"db_path": db.db_path})

    yield

    logger.info(
        "Pregnancy Health Service API stopping",
        extra={"active_chat_sessions": len(get_chat_registry())},
    )
    reset_chat_registry()


app = FastAPI(
    title="Pregnancy Health Service API",
    description="Pregnancy health tracking: AI risk assessment, patient history, "
                "a streaming assistant and admin exports.",
    version="1.0.0",
    lifespan=lifespan,
)

setup_exception_handlers(app)

# Registered last runs first: logging wraps CORS.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

for router in (
    health_router,
    assessments_router,
    records_router,
    chat_router,
    users_router,
    admin_router,
):
    app.include_router(router)


if __name__ == "__main__":
    uvicorn.run("main:app", host=API_HOST, port=API_PORT, reload=API_RELOAD)
