import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.dependencies.store import close_redis_client
from app.routers import games

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Acquire API")
    logger.debug("Debug mode: %s", settings.DEBUG)

    yield

    logger.info("Shutting down Acquire API")
    await close_redis_client()
    logger.info("Redis cleanup complete")


app = FastAPI(
    title="Acquire API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.debug("CORS configured with origins: %s", settings.CORS_ORIGINS)

app.include_router(games.router, prefix="/api/v1")
logger.debug("Routers registered: /api/v1/games")


@app.get("/")
def root():
    return {"message": "Acquire API"}


@app.get("/health")
def health():
    return {"status": "healthy"}
