from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from empathy.api.adaptive import router as adaptive_router
from empathy.config.settings import settings
from empathy.core.logger import setup_logger
from empathy.db.session import init_db

setup_logger(level=settings.log_level, log_file=settings.log_file or None, serialize=settings.log_json)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info("Ensuring database tables exist")
    init_db()
    yield


app = FastAPI(title="Empathy Adaptive Engine", lifespan=lifespan)
app.include_router(adaptive_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
