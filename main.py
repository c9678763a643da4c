"""
Ops Console Chat entry point.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from opschat.core.config import settings
from opschat.core.database import Base, engine
from opschat.core.exceptions import request_validation_handler, storage_error_handler
from opschat.core.middleware import SessionMiddleware
from opschat.router.endpoints import api_router
from opschat.session.session_layer import init_redis
import opschat.model  # noqa: F401
import logging
import uvicorn

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def connect_session_store() -> None:
    try:
        init_redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            session_ttl=settings.SESSION_TTL,
        )
    except Exception as e:
        # chat routes answer 500 until Redis is reachable; /health stays up
        logger.error(f"Redis initialization failed: {e}")


def check_database() -> None:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection OK")
        if settings.DEBUG:
            # local convenience only; deployed schemas come from alembic
            Base.metadata.create_all(bind=engine)
            logger.info("Chat tables ensured (DEBUG mode)")
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    connect_session_store()
    check_database()
    yield
    logger.info("Shutting down...")
    engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(SQLAlchemyError, storage_error_handler)

app.add_middleware(SessionMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
