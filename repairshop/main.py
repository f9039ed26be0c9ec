import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

# Import models so every table is registered with Base before create_all
from . import models  # noqa: F401
from .database import Base, engine
from .domain.repairs import router as repairs_router
from .domain.sms import router as sms_router
from .services.twilio_service import build_messaging_client

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    app.state.messaging_client = build_messaging_client()

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Repair Shop API", version="1.0.0", lifespan=lifespan)

app.include_router(sms_router)
app.include_router(repairs_router)


@app.get("/")
def root():
    return {"message": "Repair Shop API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
