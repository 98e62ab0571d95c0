# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.dependencies import get_engine
from .api.endpoints import reports, session, telemetry
from .config import get_settings
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    engine = app.dependency_overrides.get(get_engine, get_engine)()
    if settings.live_monitor:
        engine.monitor.start()
    logger.info(f"NeuroFlow backend started ({engine.lifecycle.status_message()})")
    yield
    await engine.monitor.stop()


app = FastAPI(title="NeuroFlow Backend", version="1.0.0", lifespan=lifespan)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(telemetry.router)
app.include_router(session.router)
app.include_router(reports.router)

@app.get("/")
async def root():
    return {"message": "NeuroFlow Backend API", "version": "1.0.0"}

@app.get("/health")
async def health():
    return {"status": "healthy", "service": "neuroflow"}
