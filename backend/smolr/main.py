"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smolr.api.routes import router
from smolr.config import CORS_ORIGINS, logger as config_logger
from smolr.conversion.service import get_conversion_service
from smolr.db import init_db, record_run

logging.getLogger("uvicorn").setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    svc = get_conversion_service()
    svc.add_run_listener(record_run)
    config_logger.info("Smolr API started")
    yield
    svc.cancel()
    config_logger.info("Smolr API shutting down")


app = FastAPI(
    title="Smolr API",
    description="Batch-shrink images with external encoders, by quality and optimization profile.",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if CORS_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    from smolr.config import HOST, PORT
    uvicorn.run("smolr.main:app", host=HOST, port=PORT, reload=True)
